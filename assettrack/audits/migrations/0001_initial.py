# Generated manually for compliance audits

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('assets', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Audit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('location', models.CharField(blank=True, max_length=255, null=True)),
                ('category', models.CharField(blank=True, choices=[('TOOL_ROOM_SPM', 'Tool Room SPM'), ('CNC_MACHINE', 'CNC Machine'), ('WORKSTATION', 'Workstation'), ('MATERIAL_HANDLING', 'Material Handling')], max_length=30, null=True)),
                ('status', models.CharField(choices=[('SCHEDULED', 'Scheduled'), ('IN_PROGRESS', 'In Progress'), ('COMPLETED', 'Completed'), ('DISCREPANCY_FOUND', 'Discrepancy Found')], default='SCHEDULED', max_length=20)),
                ('scheduled_date', models.DateTimeField()),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('total_assets', models.PositiveIntegerField(default=0)),
                ('assets_scanned', models.PositiveIntegerField(default=0)),
                ('discrepancies', models.PositiveIntegerField(default=0)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audits', to='assets.asset')),
                ('auditor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='audits', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audits',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_audit_status'),
                    models.Index(fields=['scheduled_date'], name='idx_audit_scheduled_date'),
                ],
            },
        ),
    ]
