# users/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.contrib.auth.forms import UserCreationForm

from .models import CustomUser


class AccountCreationForm(UserCreationForm):
    class Meta:
        model = CustomUser
        fields = ('email', 'role')


@admin.register(CustomUser)
class AccountAdmin(UserAdmin):
    add_form = AccountCreationForm
    list_display = ('email', 'full_name', 'role', 'moderates_quotes', 'is_active')
    list_filter = ('role', 'is_active', 'is_superuser')
    search_fields = ('email', 'first_name', 'last_name', 'phone')
    ordering = ('-date_joined',)
    readonly_fields = ('last_login', 'date_joined')

    fieldsets = (
        ('Account', {'fields': ('email', 'password')}),
        ('Contact', {'fields': ('first_name', 'last_name', 'phone')}),
        ('Access', {'fields': ('role', 'is_active', 'is_staff', 'is_superuser')}),
        ('Activity', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        ('Account', {
            'classes': ('wide',),
            'fields': ('email', 'role', 'password1', 'password2'),
        }),
    )

    @admin.display(boolean=True, description='Quote inbox')
    def moderates_quotes(self, obj):
        return obj.can_moderate_quotes
