from django.conf import settings
from django.db import migrations


def create_ops_organization(apps, schema_editor):
    Organization = apps.get_model('organizations', 'Organization')
    Organization.objects.get_or_create(
        id=settings.OPS_ORGANIZATION_ID,
        defaults={
            'name': 'Operations',
            'slug': settings.OPS_ORGANIZATION_SLUG,
            'plan': 'enterprise',
        },
    )


def remove_ops_organization(apps, schema_editor):
    Organization = apps.get_model('organizations', 'Organization')
    Organization.objects.filter(id=settings.OPS_ORGANIZATION_ID).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('organizations', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_ops_organization, remove_ops_organization),
    ]
