from django.db import migrations


def seed_templates(apps, schema_editor):
    GameTemplate = apps.get_model('games', 'GameTemplate')
    GameTemplate.objects.get_or_create(slug='unjumble', defaults={'name': 'Unjumble'})


def unseed_templates(apps, schema_editor):
    GameTemplate = apps.get_model('games', 'GameTemplate')
    GameTemplate.objects.filter(slug='unjumble', games__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('games', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_templates, unseed_templates),
    ]
