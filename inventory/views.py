import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.identity import actor_for_request
from users.permissions import IsOwner
from .errors import ValidationFailedError
from .models import Product
from .serializers import (
    ImportLogSerializer,
    ProductSerializer,
    ProductUpdateSerializer,
    require_fields,
)
from .services.concurrency import update_product
from .services.csv_import import check_upload, import_products

logger = logging.getLogger(__name__)


# ====================================
# PRODUCT API
# ====================================

class ProductViewSet(viewsets.ModelViewSet):
    """
    Products.

    Reads are open to any authenticated actor. Updates (PUT/PATCH) run the
    version-checked write path for owners and staff. Create, delete and CSV
    import are owner only.
    """
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    resource_name = 'product'
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action in ('create', 'destroy', 'import_csv'):
            return [IsAuthenticated(), IsOwner()]
        return [IsAuthenticated()]

    def get_queryset(self):
        """Filter products based on query parameters"""
        queryset = Product.objects.all()

        # Filter by category
        category = self.request.query_params.get('category', None)
        if category and category != 'All':
            queryset = queryset.filter(category=category)

        # Search by name or SKU
        search = self.request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(sku__icontains=search)
            )

        return queryset

    def create(self, request, *args, **kwargs):
        require_fields(request.data, ['name', 'sku'])
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.save()
        logger.info(f"Product created: {product.sku} by user #{request.user.pk}")
        return Response(self.get_serializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        require_fields(request.data, ['version'] if partial else ProductUpdateSerializer.REQUIRED_FIELDS)

        payload = ProductUpdateSerializer(data=request.data, partial=partial)
        if not payload.is_valid():
            raise ValidationFailedError(details={'resource': self.resource_name, 'fields': payload.errors})

        changes = dict(payload.validated_data)
        expected_version = changes.pop('version')

        outcome = update_product(
            kwargs['pk'],
            changes,
            expected_version,
            actor_for_request(request),
        )
        if not outcome.ok:
            raise outcome.as_error()

        return Response(self.get_serializer(outcome.product).data)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        sku = product.sku
        product.delete()
        logger.info(f"Product deleted: {sku} by user #{request.user.pk}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        url_name='import',
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_csv(self, request):
        """Bulk create/update products from an uploaded CSV file."""
        upload = request.FILES.get('file')
        if upload is None:
            raise ValidationFailedError(
                "No CSV file provided",
                details={'resource': 'import', 'field': 'file'},
            )

        check_upload(upload.name, upload.size)
        log, already_processed = import_products(upload.read(), upload.name, request.user)

        return Response({
            'success': True,
            'message': 'File already processed' if already_processed else 'CSV import completed',
            'import_id': log.pk,
            'summary': log.summary,
            'results': log.results,
            'log': ImportLogSerializer(log).data,
        })

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Get inventory statistics for dashboard"""
        threshold = settings.INVENTORY_CONFIG.get('LOW_STOCK_THRESHOLD', 5)
        products = Product.objects.all()

        value_expression = ExpressionWrapper(
            F('quantity') * F('unit_price'),
            output_field=DecimalField(max_digits=20, decimal_places=2),
        )
        totals = products.aggregate(
            total_products=Count('id'),
            total_units=Coalesce(Sum('quantity'), 0),
            inventory_value=Sum(value_expression),
        )

        by_category = (
            products.values('category')
            .annotate(products=Count('id'), units=Coalesce(Sum('quantity'), 0))
            .order_by('category')
        )

        return Response({
            'total_products': totals['total_products'],
            'total_units': totals['total_units'],
            'inventory_value': str(totals['inventory_value'] or Decimal('0.00')),
            'low_stock': products.filter(quantity__gt=0, quantity__lte=threshold).count(),
            'out_of_stock': products.filter(quantity=0).count(),
            'by_category': [
                {
                    'category': row['category'] or 'Uncategorized',
                    'products': row['products'],
                    'units': row['units'],
                }
                for row in by_category
            ],
        })
