"""
Admin configuration for authentication app
"""
from cryptography.fernet import InvalidToken
from django.contrib import admin
from .crypto_utils import decrypt_user_data, mask_email
from .models import PendingRegistration, RegisteredUser


@admin.register(PendingRegistration)
class PendingRegistrationAdmin(admin.ModelAdmin):
    """
    Admin interface for PendingRegistration model
    NOTE: codes are stored hashed, they cannot be read back
    """
    list_display = ('id', 'email', 'is_jury', 'issued_at')
    list_filter = ('is_jury', 'issued_at')
    search_fields = ('email',)
    ordering = ('-issued_at',)

    fieldsets = (
        ('Registro', {
            'fields': ('email', 'display_name', 'is_jury')
        }),
        ('Artefacto', {
            'fields': ('code_hash', 'link_nonce', 'issued_at'),
            'classes': ('collapse',),
            'description': 'Hash del código y nonce del link (no legibles)'
        }),
    )

    readonly_fields = ('code_hash', 'link_nonce', 'issued_at')

    def has_add_permission(self, request):
        """Pending registrations are only created through the API"""
        return False


@admin.register(RegisteredUser)
class RegisteredUserAdmin(admin.ModelAdmin):
    """
    Admin interface for RegisteredUser model
    NOTE: Personal data is stored encrypted; the list shows the name and a masked email
    """
    list_display = (
        'id',
        'role',
        'registrant',
        'email_hash_short',
        'created_at'
    )
    list_filter = ('role', 'is_jury', 'created_at')
    search_fields = ('email_hash',)  # Search by hash
    ordering = ('-created_at',)

    fieldsets = (
        ('Identificación', {
            'fields': ('session_id', 'email_hash', 'role', 'is_jury'),
            'description': 'Hash del email para identificación'
        }),
        ('Datos Cifrados', {
            'fields': (
                'email_encrypted',
                'name_encrypted'
            ),
            'classes': ('collapse',),
            'description': 'Datos personales cifrados (no legibles directamente)'
        }),
        ('Metadata', {
            'fields': ('created_at', 'last_verified_at')
        }),
    )

    readonly_fields = ('session_id', 'email_hash', 'created_at', 'last_verified_at')

    def email_hash_short(self, obj):
        """Show first 16 chars of hash"""
        return f"{obj.email_hash[:16]}..." if obj.email_hash else "-"
    email_hash_short.short_description = "Hash Email (truncado)"

    def registrant(self, obj):
        """Decrypted name with a masked email"""
        try:
            data = decrypt_user_data(obj)
        except InvalidToken:
            return "(ilegible)"
        return f"{data['name'] or '-'} <{mask_email(data['email'])}>"
    registrant.short_description = "Registrado"

    def has_add_permission(self, request):
        """Users are only recorded through email verification"""
        return False

    # Security: prevent accidental deletion
    def has_delete_permission(self, request, obj=None):
        """Only superusers can delete users"""
        return request.user.is_superuser
