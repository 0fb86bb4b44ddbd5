# core/urls.py

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView

from . import views

admin.site.site_header = 'Expérience Tech'
admin.site.index_title = 'Quote requests and accounts'

urlpatterns = [
    path('admin/', admin.site.urls),

    path('api/', views.api_root, name='api_root'),
    path('api/schema/', SpectacularAPIView.as_view(), name='api_schema'),
    path('api/health/', views.health_check, name='api_health'),
    path('api/ready/', views.readiness_check, name='api_ready'),
    path('api/alive/', views.liveness_check, name='api_alive'),

    path('api/', include('users.urls')),
    path('api/', include('quotes.urls')),
]
