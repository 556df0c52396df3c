from rest_framework import serializers

from .errors import ValidationFailedError
from .models import ImportLog, Product


class ProductSerializer(serializers.ModelSerializer):
    """Full product representation; also used to create products."""

    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'sku',
            'category',
            'quantity',
            'unit_price',
            'stock_value',
            'version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'version', 'created_at', 'updated_at']

    def validate_sku(self, value):
        return value.strip()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value


class ProductUpdateSerializer(serializers.Serializer):
    """
    Payload of a version-checked update.

    PUT requires every field in REQUIRED_FIELDS; PATCH requires only
    ``version``. SKU uniqueness is left to the database so the stored row
    is never read twice.
    """

    REQUIRED_FIELDS = ['name', 'sku', 'quantity', 'unit_price', 'version']

    name = serializers.CharField(max_length=255)
    sku = serializers.CharField(max_length=64)
    category = serializers.CharField(max_length=100, allow_blank=True, required=False)
    quantity = serializers.IntegerField(min_value=0)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    version = serializers.IntegerField(min_value=1)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate_sku(self, value):
        return value.strip()


class ImportLogSerializer(serializers.ModelSerializer):
    imported_by_username = serializers.CharField(source='imported_by.username', read_only=True, default=None)

    class Meta:
        model = ImportLog
        fields = [
            'id',
            'filename',
            'status',
            'total_rows',
            'created_rows',
            'updated_rows',
            'failed_rows',
            'results',
            'imported_by_username',
            'created_at',
        ]
        read_only_fields = fields


def require_fields(data, required, resource='product'):
    """Raise VALIDATION_ERROR listing the required fields when any is missing."""
    missing = [field for field in required if data.get(field) in (None, '')]
    if missing:
        raise ValidationFailedError(
            f"Missing required fields: {', '.join(missing)}",
            details={
                'resource': resource,
                'required_fields': list(required),
                'missing_fields': missing,
            },
        )
