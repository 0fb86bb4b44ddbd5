# quotes/views.py

import logging
import math

from django.core.paginator import EmptyPage, Paginator
from rest_framework import generics, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from core.middleware import get_client_ip
from .exceptions import ValidationFailed
from .models import QuoteRequest
from .moderation import moderate
from .permissions import IsQuoteModerator
from .serializers import (
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, QuoteFilterSerializer,
    QuoteModerationSerializer, QuoteRequestSerializer,
)
from .services import submit_quote_request
from .utils import sanitize_search_query

logger = logging.getLogger(__name__)


class QuoteRequestCreateView(APIView):
    """
    Public endpoint for requesting a quote on a service.
    POST /api/services/<service_id>/quote/
    """
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'quotes'

    def post(self, request, service_id):
        receipt = submit_quote_request(
            service_id,
            request.data,
            ip_address=get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            user=request.user,
        )
        logger.info(f"Quote request {receipt['quoteId']} received for service {service_id}")
        return Response(receipt, status=status.HTTP_201_CREATED)


class OpenEndedPaginator(Paginator):
    """Pages past the last one are empty instead of an error."""

    def validate_number(self, number):
        try:
            return super().validate_number(number)
        except EmptyPage:
            number = int(number)
            if number < 1:
                raise
            return number

    def page(self, number):
        number = self.validate_number(number)
        if number > self.num_pages:
            return self._get_page([], number, self)
        return super().page(number)


class QuoteRequestPagination(PageNumberPagination):
    django_paginator_class = OpenEndedPaginator
    page_size = DEFAULT_PAGE_SIZE
    page_size_query_param = 'limit'
    max_page_size = MAX_PAGE_SIZE

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response({
            'quoteRequests': data,
            'pagination': {
                'page': self.page.number,
                'limit': limit,
                'total': total,
                'totalPages': math.ceil(total / limit),
            },
        })


class QuoteRequestListView(generics.ListAPIView):
    """
    Moderation list with filters.
    GET /api/admin/quote-requests/?status=&serviceId=&search=&dateFrom=&dateTo=&page=&limit=
    """
    serializer_class = QuoteRequestSerializer
    permission_classes = [IsAuthenticated, IsQuoteModerator]
    pagination_class = QuoteRequestPagination

    def get_queryset(self):
        filters = QuoteFilterSerializer(data=self.request.query_params)
        if not filters.is_valid():
            raise ValidationFailed(filters.errors)

        params = filters.validated_data
        return QuoteRequest.objects.for_moderation(
            status=params.get('status'),
            service_id=params.get('service_id'),
            date_from=params.get('date_from'),
            date_to=params.get('date_to'),
            search=sanitize_search_query(params.get('search')),
        )


class QuoteRequestDetailView(generics.RetrieveUpdateAPIView):
    """
    GET    /api/admin/quote-requests/<pk>/
    PUT    /api/admin/quote-requests/<pk>/   {status?, notes?, assignedTo?}
    PATCH  /api/admin/quote-requests/<pk>/
    """
    serializer_class = QuoteRequestSerializer
    permission_classes = [IsAuthenticated, IsQuoteModerator]

    def get_object(self):
        quote = QuoteRequest.objects.get_by_id(self.kwargs['pk'])
        self.check_object_permissions(self.request, quote)
        return quote

    def update(self, request, *args, **kwargs):
        # Resolve the id first so an unknown record is a 404, not a 400
        quote = self.get_object()

        serializer = QuoteModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = moderate(quote.pk, serializer.validated_data)
        logger.info(
            f"Quote request {quote.pk} moderated by {request.user.email}: "
            f"{result.previous_status} -> {result.quote.status}"
        )
        return Response(QuoteRequestSerializer(result.quote).data)


class QuoteRequestStatsView(APIView):
    """
    Counts per status for the dashboard.
    GET /api/admin/quote-requests/stats/
    """
    permission_classes = [IsAuthenticated, IsQuoteModerator]

    def get(self, request):
        return Response(QuoteRequest.objects.status_counts())
