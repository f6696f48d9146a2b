from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import (
    User,
    AuditLog,
    Business,
    BusinessMembership,
    BusinessUnit,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['name', 'email', 'is_active', 'is_staff', 'created_at']
    list_filter = ['is_active', 'is_staff', 'created_at']
    search_fields = ['name', 'email']
    readonly_fields = ('id', 'created_at', 'updated_at', 'last_login')
    ordering = ['-created_at']

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        ('Personal info', {'fields': ('name',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('name', 'email', 'password1', 'password2'),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        if obj:  # editing an existing object
            return self.readonly_fields + ('email',)
        return self.readonly_fields


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'business', 'action', 'model_name', 'object_id', 'timestamp']
    list_filter = ['action', 'model_name', 'timestamp']
    search_fields = ['user__name', 'user__email', 'model_name', 'object_id']
    readonly_fields = ['id', 'business', 'user', 'action', 'model_name', 'object_id', 'changes', 'timestamp']
    ordering = ['-timestamp']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class BusinessUnitInline(admin.TabularInline):
    model = BusinessUnit
    extra = 0
    readonly_fields = ['id', 'created_at']


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'email', 'tin', 'is_active', 'created_at']
    search_fields = ['name', 'tin', 'email', 'owner__name', 'owner__email']
    list_filter = ['is_active', 'created_at']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [BusinessUnitInline]
    ordering = ['name']

    fieldsets = (
        (None, {'fields': ('id', 'name', 'tin', 'owner')}),
        ('Contact', {'fields': ('email', 'address')}),
        ('Status', {'fields': ('is_active',)}),
        ('Dates', {'fields': ('created_at', 'updated_at')}),
    )


@admin.register(BusinessMembership)
class BusinessMembershipAdmin(admin.ModelAdmin):
    list_display = ['business', 'user', 'role', 'default_business_unit', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'created_at']
    search_fields = ['business__name', 'user__name', 'user__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    ordering = ['business__name', 'user__name']
