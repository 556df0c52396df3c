"""
Inventory Management Application

Products carry an integer ``version`` that is the only concurrency token.
Every accepted write raises it by exactly one through a single conditional
UPDATE, so of two writers holding the same version at most one succeeds;
the other gets a CONFLICT carrying the winner's version.

Staff may change every field except the protected ones (unit price by
default, see INVENTORY_CONFIG['PROTECTED_FIELDS']); owners may change all
fields. A staff write that changes a protected field is rejected with
PERMISSION_EDIT_<FIELD> before the version is even compared.

USAGE:
    from inventory.services.concurrency import update_product
    from users.identity import actor_for_user

    outcome = update_product(product.pk, {'name': 'Milk 2L'}, 3, actor_for_user(user))
    if not outcome.ok:
        raise outcome.as_error()
"""

__version__ = '1.0.0'
