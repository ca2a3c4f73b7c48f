"""
URL configuration for pitch_voting_api project.
"""
from django.contrib import admin
from django.contrib.auth.models import User, Group
from django.urls import path, include
from django.http import JsonResponse

# Unregister default Django User and Group models
admin.site.unregister(User)
admin.site.unregister(Group)

# Customize admin site
admin.site.site_header = "Plugin Pitch - Administración"
admin.site.site_title = "Plugin Pitch Admin"
admin.site.index_title = "Gestión de Votación"


def health_check(request):
    """Simple health check endpoint"""
    return JsonResponse({
        'status': 'ok',
        'service': 'pitch-voting-api',
        'version': '1.0.0'
    })


urlpatterns = [
    # Admin panel
    path('admin/', admin.site.urls),

    # Health check
    path('health/', health_check, name='health_check'),

    # API endpoints
    path('api/auth/', include('authentication.urls')),
    path('api/', include('voting.urls')),
]
