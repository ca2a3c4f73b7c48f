"""
Authentication app URLs - registration, verification, admin access
"""
from django.urls import path
from . import views

app_name = 'authentication'

urlpatterns = [
    # Email verification flow
    path('register/', views.RegisterView.as_view(), name='register'),
    path('resend/', views.ResendView.as_view(), name='resend'),
    path('verify/', views.VerifyView.as_view(), name='verify'),
    path('logout/', views.LogoutView.as_view(), name='logout'),

    # Admin access
    path('admin/login/', views.AdminLoginView.as_view(), name='admin_login'),
    path('admin/logout/', views.AdminLogoutView.as_view(), name='admin_logout'),
]
