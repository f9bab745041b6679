from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('view', 'View'), ('movement_create', 'Movement Requested'), ('movement_approve', 'Movement Approved'), ('movement_reject', 'Movement Rejected'), ('movement_dispatch', 'Movement Dispatched'), ('movement_complete', 'Movement Completed'), ('movement_delete', 'Movement Deleted'), ('asset_create', 'Asset Registered'), ('asset_update', 'Asset Updated'), ('asset_delete', 'Asset Deleted'), ('audit_create', 'Audit Scheduled'), ('audit_update', 'Audit Updated'), ('audit_start', 'Audit Started'), ('audit_complete', 'Audit Completed'), ('audit_delete', 'Audit Deleted')], max_length=50),
        ),
    ]
