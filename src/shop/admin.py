from mptt.admin import DraggableMPTTAdmin
from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from . import models


@admin.register(get_user_model())
class UserAdmin(BaseUserAdmin):
    list_display = ('pk', 'email', 'first_name', 'last_name', 'is_active',
                    'is_staff', 'phone')
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        (_('Personal info'), {
            'fields': ('first_name', 'last_name', 'phone')}),
        (_('Address info'), {
            'fields': ('address_line_1', 'city', 'postal_code')}),
        (_('Permissions'), {
            'fields': (
                'is_active', 'is_staff', 'is_superuser', 'groups',
                'user_permissions')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2'),
        }),
    )

    search_fields = ('first_name', 'last_name', 'email', 'phone',)
    list_filter = ('is_active', 'is_staff')
    ordering = ('email',)


@admin.register(models.Category)
class CategoryAdmin(DraggableMPTTAdmin):
    mptt_level_indent = 20
    list_display = ('tree_actions', 'indented_name', 'pk', 'slug', 'is_active')
    list_display_links = ('indented_name',)

    def indented_name(self, instance):
        return format_html(
            '<div style="text-indent:{}px">{}</div>',
            instance._mpttfield('level') * self.mptt_level_indent,
            instance.name,
        )

    indented_name.short_description = _('Category Tree')
    search_fields = ("name",)


@admin.register(models.Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('pk', 'name', 'email', 'phone', 'is_active')
    search_fields = ('name', 'email')


class ProductImageInlineAdmin(admin.TabularInline):
    model = models.ProductImage
    extra = 0


class ProductAttributeInlineAdmin(admin.TabularInline):
    model = models.ProductAttribute
    extra = 0


@admin.register(models.Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'name', 'sku', 'category', 'price', 'sale_price', 'stock',
        'is_active', 'is_featured', 'modified',)
    list_filter = ('is_active', 'is_featured', 'is_flash_deal', 'category')
    search_fields = ('name', 'sku', 'brand')
    prepopulated_fields = {'slug': ('name',)}
    inlines = [ProductImageInlineAdmin, ProductAttributeInlineAdmin]


class AttributeOptionInlineAdmin(admin.TabularInline):
    model = models.AttributeOption
    extra = 0


@admin.register(models.Attribute)
class AttributeAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'name', 'display_name', 'attribute_type', 'is_filterable',
        'sort_order',)
    inlines = [AttributeOptionInlineAdmin]


@admin.register(models.ProductDraft)
class ProductDraftAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'name', 'draft_status', 'created_by', 'original_product',
        'version', 'modified',)
    list_filter = ('draft_status',)
    search_fields = ('name', 'sku')


class OrderItemAdmin(admin.TabularInline):
    model = models.OrderItem
    extra = 0

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]


class OrderStatusHistoryAdmin(admin.TabularInline):
    model = models.OrderStatusHistory
    extra = 0

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]


class OrderShipmentAdmin(admin.TabularInline):
    model = models.OrderShipment
    extra = 0


@admin.register(models.Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'order_number', 'customer_email', 'status', 'payment_status',
        'payment_method', 'total_amount', 'created',)
    list_filter = ('status', 'payment_status', 'payment_method')
    search_fields = ('order_number', 'customer_email', 'tracking_number')
    inlines = [OrderItemAdmin, OrderShipmentAdmin, OrderStatusHistoryAdmin]

    def get_readonly_fields(self, request, obj=None):
        # Status moves happen through the API
        return ['status', 'payment_status', 'order_number']


@admin.register(models.SupplierOrder)
class SupplierOrderAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'order', 'product_name', 'status', 'url_validation_status',
        'customer_notified', 'modified',)
    list_filter = ('status', 'url_validation_status')
    search_fields = ('product_name', 'order__order_number')
    readonly_fields = ('status',)


@admin.register(models.CustomerCredit)
class CustomerCreditAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'user', 'total_credit_amount', 'available_credit_amount',)
    search_fields = ('user__email',)


@admin.register(models.CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    list_display = ('pk', 'user', 'transaction_type', 'amount', 'created',)
    list_filter = ('transaction_type',)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]


class ProductPromotionInlineAdmin(admin.TabularInline):
    model = models.ProductPromotion
    extra = 0


@admin.register(models.Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = (
        'pk', 'name', 'promotion_type', 'start_date', 'end_date', 'is_active',)
    list_filter = ('is_active', 'promotion_type')
    inlines = [ProductPromotionInlineAdmin]


@admin.register(models.PudoLocker)
class PudoLockerAdmin(admin.ModelAdmin):
    list_display = ('pk', 'code', 'name', 'city', 'is_active', 'last_synced',)
    list_filter = ('is_active', 'provider')
    search_fields = ('code', 'name', 'address')
