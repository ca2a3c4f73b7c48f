"""
Admin configuration for voting app
"""
from django.contrib import admin
from django.db.models import Sum
from django.utils.html import format_html
from .models import Project, Vote, Winner


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """
    Admin interface for Project model
    """
    list_display = ('name', 'id', 'created_at', 'weighted_votes', 'is_winner')
    search_fields = ('name', 'description')
    ordering = ('created_at',)

    fieldsets = (
        ('Información', {
            'fields': ('name', 'description')
        }),
        ('Metadata', {
            'fields': ('id', 'created_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ('id', 'created_at')

    def weighted_votes(self, obj):
        """Jury votes count double"""
        total = Vote.objects.filter(project_id=obj.id).aggregate(total=Sum('weight'))['total']
        return format_html('<strong>{}</strong>', total or 0)
    weighted_votes.short_description = "Votos (ponderados)"

    def is_winner(self, obj):
        winner = Winner.load()
        if winner and winner.winner_id == obj.id:
            return format_html('<span style="color: green;">● Ganador</span>')
        return "-"
    is_winner.short_description = "Ganador"


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    """
    Admin interface for Vote model
    The ledger is append-only: nothing can be added or edited here
    """
    list_display = ('id', 'project_id', 'identity_short', 'weight', 'timestamp_display')
    list_filter = ('weight', 'timestamp')
    search_fields = ('project_id', 'user_identity')
    ordering = ('-timestamp',)

    fieldsets = (
        ('Voto', {
            'fields': ('project_id', 'user_identity', 'weight')
        }),
        ('Metadata', {
            'fields': ('timestamp',)
        }),
    )

    readonly_fields = ('project_id', 'user_identity', 'weight', 'timestamp')

    def identity_short(self, obj):
        """Partially hidden identity"""
        local, _, domain = obj.user_identity.partition('@')
        return f"{local[:2]}****@{domain}"
    identity_short.short_description = "Votante"

    def timestamp_display(self, obj):
        """Format timestamp"""
        return obj.timestamp.strftime('%d/%m/%Y %H:%M:%S')
    timestamp_display.short_description = "Fecha y Hora"

    # Security: prevent modifications
    def has_add_permission(self, request):
        """Votes can only be added through the API"""
        return False

    def has_change_permission(self, request, obj=None):
        """Votes cannot be modified"""
        return False

    def has_delete_permission(self, request, obj=None):
        """Only superusers can delete vote records"""
        return request.user.is_superuser


@admin.register(Winner)
class WinnerAdmin(admin.ModelAdmin):
    """
    Admin interface for the winner announcement singleton
    """
    list_display = ('winner_id', 'announced_at')
    readonly_fields = ('announced_at',)

    def has_add_permission(self, request):
        """Only one announcement can exist"""
        return not Winner.objects.exists()
