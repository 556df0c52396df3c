"""
Bulk product import from CSV.

Imports are last-write-wins: a row whose SKU exists overwrites the
product without a version check, but the version still goes up by one so
clients holding the old version get a conflict on their next save.
Uploads are idempotent by content hash.
"""

import csv
import hashlib
import io
import logging
from decimal import Decimal, InvalidOperation
from pathlib import PurePath

from django.conf import settings
from django.db import DatabaseError, transaction

from inventory.errors import ValidationFailedError
from inventory.models import ImportLog, Product
from inventory.services.concurrency import bump_version

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['name', 'sku', 'category', 'quantity', 'unit_price']
MAX_NAME_LENGTH = 255
MAX_SKU_LENGTH = 64
MAX_CATEGORY_LENGTH = 100
MAX_UNIT_PRICE = Decimal('99999999.99')


def file_hash(content):
    return hashlib.sha256(content).hexdigest()


def check_upload(filename, size):
    """Reject uploads by name and size before reading them."""
    config = settings.INVENTORY_CONFIG
    allowed = config.get('IMPORT_ALLOWED_EXTENSIONS', ['.csv'])
    max_bytes = config.get('MAX_IMPORT_BYTES', 5 * 1024 * 1024)

    if PurePath(filename or '').suffix.lower() not in allowed:
        raise ValidationFailedError(
            "Only CSV files are accepted",
            details={'resource': 'import', 'field': 'file', 'allowed_types': allowed},
        )
    if size > max_bytes:
        raise ValidationFailedError(
            "CSV file is too large",
            details={'resource': 'import', 'field': 'file', 'max_size': f"{max_bytes // (1024 * 1024)}MB"},
        )


def validate_row(row):
    """Return a list of 'field: message' strings; empty when the row is usable."""
    errors = []

    name = row.get('name', '').strip()
    if not name:
        errors.append('name: Name is required')
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f'name: Name must be {MAX_NAME_LENGTH} characters or less')

    if len(row.get('category', '').strip()) > MAX_CATEGORY_LENGTH:
        errors.append(f'category: Category must be {MAX_CATEGORY_LENGTH} characters or less')

    sku = row.get('sku', '').strip()
    if not sku:
        errors.append('sku: SKU is required')
    elif len(sku) > MAX_SKU_LENGTH:
        errors.append(f'sku: SKU must be {MAX_SKU_LENGTH} characters or less')

    try:
        quantity = int(row.get('quantity', '').strip())
    except ValueError:
        errors.append('quantity: Quantity must be a valid integer')
    else:
        if quantity < 0:
            errors.append('quantity: Quantity must be non-negative')

    try:
        unit_price = Decimal(row.get('unit_price', '').strip())
        if not unit_price.is_finite():
            raise InvalidOperation
    except InvalidOperation:
        errors.append('unit_price: Unit price must be a valid number')
    else:
        if unit_price < 0:
            errors.append('unit_price: Unit price must be non-negative')
        elif unit_price > MAX_UNIT_PRICE:
            errors.append(f'unit_price: Unit price must not exceed {MAX_UNIT_PRICE}')

    return errors


def _parse(content):
    try:
        text = content.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValidationFailedError(
            "CSV file must be UTF-8 encoded",
            details={'resource': 'import', 'field': 'file'},
        )

    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValidationFailedError(
            "CSV file must contain at least a header and one data row",
            details={'resource': 'import', 'min_rows': 2, 'actual_rows': len(lines)},
        )

    reader = csv.reader(io.StringIO('\n'.join(lines)))
    header = [column.strip().lower() for column in next(reader)]

    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise ValidationFailedError(
            f"Missing required columns: {', '.join(missing)}",
            details={'resource': 'import', 'missing_columns': missing},
        )

    unknown = [column for column in header if column not in REQUIRED_COLUMNS]
    if unknown:
        logger.warning(f"Unknown columns in CSV: {', '.join(unknown)}")

    rows = []
    for values in reader:
        padded = values + [''] * (len(header) - len(values))
        rows.append({column: (padded[index] or '').strip() for index, column in enumerate(header)})
    return rows


def _apply_row(row, row_number):
    data = {
        'name': row['name'],
        'category': row['category'],
        'quantity': int(row['quantity']),
        'unit_price': Decimal(row['unit_price']),
    }
    sku = row['sku']

    with transaction.atomic():
        existing = Product.objects.filter(sku=sku).values_list('pk', flat=True).first()
        if existing is not None:
            bump_version(existing, data)
            product = Product.objects.get(pk=existing)
            status = 'updated'
        else:
            product = Product.objects.create(sku=sku, **data)
            status = 'created'

    return {
        'row': row_number,
        'sku': sku,
        'status': status,
        'id': product.pk,
        'version': product.version,
    }


def import_products(content, filename, user=None):
    """
    Import ``content`` (bytes). Returns ``(ImportLog, already_processed)``.

    Raises ValidationFailedError for file-level problems; row-level
    problems are reported per row in the log's ``results``.
    """
    digest = file_hash(content)
    previous = ImportLog.objects.filter(file_hash=digest).first()
    if previous is not None:
        logger.info(f"Skipping already processed import {filename} ({digest[:12]})")
        return previous, True

    rows = _parse(content)
    log = ImportLog.objects.create(
        filename=filename,
        file_hash=digest,
        status='processing',
        total_rows=len(rows),
        imported_by=user,
    )

    results = []
    for index, row in enumerate(rows):
        row_number = index + 2  # header is line 1
        errors = validate_row(row)
        if errors:
            results.append({
                'row': row_number,
                'sku': row.get('sku') or 'unknown',
                'status': 'error',
                'message': '; '.join(errors),
                'row_data': row,
            })
            continue
        try:
            results.append(_apply_row(row, row_number))
        except DatabaseError as exc:
            logger.warning(f"Import row {row_number} ({row['sku']}) failed: {exc}")
            results.append({
                'row': row_number,
                'sku': row['sku'],
                'status': 'error',
                'message': f"Write failed: {exc}",
                'row_data': row,
            })

    log.results = results
    log.created_rows = sum(1 for result in results if result['status'] == 'created')
    log.updated_rows = sum(1 for result in results if result['status'] == 'updated')
    log.failed_rows = sum(1 for result in results if result['status'] == 'error')
    log.status = 'completed'
    log.save()

    logger.info(
        f"Import {filename}: {log.created_rows} created, {log.updated_rows} updated, "
        f"{log.failed_rows} failed of {log.total_rows}"
    )
    return log, False
