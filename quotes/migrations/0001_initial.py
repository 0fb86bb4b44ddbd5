import core.validators
import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='QuoteRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('service_id', models.CharField(help_text='Catalog identifier of the quoted service', max_length=100)),
                ('service_name', models.CharField(blank=True, default='', max_length=255)),
                ('name', models.CharField(max_length=100)),
                ('email', models.CharField(max_length=254, validators=[core.validators.validate_email_address])),
                ('phone', models.CharField(blank=True, default='', max_length=20, validators=[core.validators.validate_phone_number])),
                ('requirements', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(2000)])),
                ('budget', models.DecimalField(blank=True, decimal_places=2, help_text='Indicative budget in FCFA', max_digits=20, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('status', models.CharField(choices=[('pending', 'En attente'), ('in_progress', 'En cours'), ('quoted', 'Devis envoyé'), ('accepted', 'Accepté'), ('rejected', 'Refusé'), ('cancelled', 'Annulé')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True, default='', help_text='Internal notes, never shown to the requester', validators=[django.core.validators.MaxLengthValidator(1000)])),
                ('quoted_at', models.DateTimeField(blank=True, null=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('source', models.CharField(choices=[('website', 'Website'), ('phone', 'Phone'), ('email', 'Email'), ('admin', 'Admin')], default='website', max_length=20)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_quote_requests', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quote_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Quote Request',
                'verbose_name_plural': 'Quote Requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['service_id'], name='quote_service_idx'),
                    models.Index(fields=['email'], name='quote_email_idx'),
                    models.Index(fields=['status'], name='quote_status_idx'),
                    models.Index(fields=['-created_at'], name='quote_created_idx'),
                    models.Index(fields=['status', '-created_at'], name='quote_status_created_idx'),
                ],
            },
        ),
    ]
