# quotes/admin.py

from django import forms
from django.contrib import admin
from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils.html import format_html

from .models import QuoteRequest
from .moderation import get_policy, is_transition_allowed, moderate
from .utils import sanitize_input


class QuoteRequestAdminForm(forms.ModelForm):
    class Meta:
        model = QuoteRequest
        fields = ('status', 'assigned_to', 'notes')

    def clean_status(self):
        status = self.cleaned_data['status']
        current = self.instance.status
        if not is_transition_allowed(current, status, get_policy()):
            raise forms.ValidationError(
                f"Cannot move a quote request from '{current}' to '{status}'."
            )
        return status

    def clean_notes(self):
        return sanitize_input(self.cleaned_data.get('notes') or '')


@admin.register(QuoteRequest)
class QuoteRequestAdmin(admin.ModelAdmin):
    form = QuoteRequestAdminForm
    list_display = ('name', 'email', 'service_label', 'status', 'assigned_to', 'created_at')
    list_filter = ('status', 'source', 'created_at')
    search_fields = ['name', 'email', 'service_id', 'service_name']
    date_hierarchy = 'created_at'
    list_select_related = ('assigned_to', 'user')

    # Requester and provenance fields are fixed once submitted
    readonly_fields = (
        'id', 'service_id', 'service_name', 'name', 'email', 'phone', 'requirements',
        'budget', 'source', 'ip_address', 'user_agent', 'user_link',
        'quoted_at', 'responded_at', 'resolved_at', 'created_at', 'updated_at',
    )
    fieldsets = (
        ('Request', {'fields': ('id', 'service_id', 'service_name', 'requirements', 'budget')}),
        ('Requester', {'fields': ('name', 'email', 'phone', 'user_link')}),
        ('Moderation', {'fields': ('status', 'assigned_to', 'notes')}),
        ('Timeline', {'fields': ('created_at', 'updated_at', 'responded_at', 'quoted_at', 'resolved_at')}),
        ('Provenance', {'fields': ('source', 'ip_address', 'user_agent'), 'classes': ('collapse',)}),
    )

    def service_label(self, obj):
        return obj.service_name or obj.service_id
    service_label.short_description = 'Service'

    def user_link(self, obj):
        if obj.user:
            return format_html('<a href="{}">{}</a>',
                               reverse("admin:users_customuser_change", args=(obj.user.pk,)),
                               obj.user.email)
        return "Anonymous"
    user_link.short_description = 'Account'

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        if db_field.name == 'assigned_to':
            kwargs['queryset'] = get_user_model().objects.quote_moderators()
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        if change and 'status' in form.changed_data:
            # Goes through the workflow so timestamps and the requester email follow
            moderate(obj.pk, {
                'status': obj.status,
                'notes': obj.notes,
                'assigned_to': obj.assigned_to,
            })
        else:
            super().save_model(request, obj, form, change)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
