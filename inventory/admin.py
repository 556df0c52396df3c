import csv

from django.contrib import admin
from django.db.models import F
from django.http import HttpResponse
from django.utils.html import format_html

from .models import ImportLog, Product
from .services.csv_import import REQUIRED_COLUMNS

# ============================================
# CUSTOM ACTIONS
# ============================================

def export_to_csv(modeladmin, request, queryset):
    """Download the selected products in the CSV import layout."""
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = 'attachment; filename=products.csv'

    writer = csv.writer(response)
    writer.writerow(REQUIRED_COLUMNS)
    for product in queryset.order_by('sku'):
        writer.writerow([getattr(product, column) for column in REQUIRED_COLUMNS])

    return response
export_to_csv.short_description = "Export to CSV (re-importable)"


# ============================================
# PRODUCT ADMIN
# ============================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = [
        'sku',
        'name',
        'category',
        'quantity',
        'unit_price',
        'stock_badge',
        'version',
        'updated_at',
    ]
    list_filter = ['category']
    search_fields = ['name', 'sku']
    readonly_fields = ['version', 'created_at', 'updated_at']
    fieldsets = (
        ('Basic Information', {'fields': ('name', 'sku', 'category')}),
        ('Stock & Pricing', {'fields': ('quantity', 'unit_price')}),
        ('Concurrency', {'fields': ('version', 'created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
    actions = [export_to_csv]

    def stock_badge(self, obj):
        if obj.quantity == 0:
            color, label = '#dc3545', 'Out of stock'
        elif obj.is_low_stock():
            color, label = '#ffc107', 'Low stock'
        else:
            color, label = '#28a745', 'In stock'
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            color,
            label,
        )
    stock_badge.short_description = 'Stock'

    def save_model(self, request, obj, form, change):
        # admin edits are last-write-wins but still move the version
        if change:
            obj.version = F('version') + 1
        super().save_model(request, obj, form, change)
        if change:
            obj.refresh_from_db(fields=['version'])


# ============================================
# IMPORT LOG ADMIN
# ============================================

@admin.register(ImportLog)
class ImportLogAdmin(admin.ModelAdmin):
    list_display = ['filename', 'status', 'total_rows', 'created_rows', 'updated_rows', 'failed_rows', 'imported_by', 'created_at']
    list_filter = ['status']
    search_fields = ['filename', 'file_hash']
    readonly_fields = [field.name for field in ImportLog._meta.fields]

    def has_add_permission(self, request):
        return False
