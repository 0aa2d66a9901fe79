import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='GameTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Time when the record was created.')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Time when the record was last updated.')),
                ('slug', models.SlugField(help_text='Stable template identifier.', max_length=64, unique=True)),
                ('name', models.CharField(max_length=128)),
            ],
            options={
                'verbose_name': 'Game Template',
                'verbose_name_plural': 'Game Templates',
                'ordering': ['slug'],
            },
        ),
        migrations.CreateModel(
            name='OrphanedMedia',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Time when the record was created.')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Time when the record was last updated.')),
                ('path_prefix', models.CharField(max_length=255)),
                ('reason', models.TextField(blank=True, default='')),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Orphaned Media',
                'verbose_name_plural': 'Orphaned Media',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Time when the record was created.')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Time when the record was last updated.')),
                ('role', models.CharField(choices=[('USER', 'User'), ('ADMIN', 'Admin'), ('SUPER_ADMIN', 'Super admin')], default='USER', max_length=16)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='game_role', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'User Role',
                'verbose_name_plural': 'User Roles',
            },
        ),
        migrations.CreateModel(
            name='Game',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Time when the record was created.')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Time when the record was last updated.')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Unique game name.', max_length=128, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('thumbnail_image', models.CharField(help_text='Storage path of the thumbnail.', max_length=255)),
                ('is_published', models.BooleanField(default=False)),
                ('game_json', models.JSONField(blank=True, default=dict)),
                ('total_played', models.PositiveIntegerField(default=0)),
                ('creator', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='games', to=settings.AUTH_USER_MODEL)),
                ('game_template', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='games', to='games.gametemplate')),
            ],
            options={
                'verbose_name': 'Game',
                'verbose_name_plural': 'Games',
                'ordering': ['created_at'],
            },
        ),
    ]
