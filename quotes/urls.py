# quotes/urls.py

from django.urls import path
from .views import (
    QuoteRequestCreateView, QuoteRequestDetailView,
    QuoteRequestListView, QuoteRequestStatsView,
)

urlpatterns = [
    # POST /api/services/<service_id>/quote/ -> Public quote request form
    path('services/<str:service_id>/quote/', QuoteRequestCreateView.as_view(), name='quote-request-create'),

    # Moderation (administrators only)
    path('admin/quote-requests/', QuoteRequestListView.as_view(), name='quote-request-list'),
    path('admin/quote-requests/stats/', QuoteRequestStatsView.as_view(), name='quote-request-stats'),
    path('admin/quote-requests/<str:pk>/', QuoteRequestDetailView.as_view(), name='quote-request-detail'),
]
