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
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('actor_id', models.CharField(max_length=255)),
                ('actor_email', models.CharField(blank=True, max_length=255)),
                ('action_type', models.CharField(max_length=64)),
                ('target_type', models.CharField(max_length=16)),
                ('target_id', models.CharField(max_length=255)),
                ('target_name', models.CharField(blank=True, max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                'verbose_name': 'Audit log entry',
                'verbose_name_plural': 'Audit log',
                'ordering': ['-timestamp'],
            },
        ),
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('is_shared', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('original_parent', models.ForeignKey(blank=True, help_text='Parent snapshot taken at soft-delete time', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='drive.folder')),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='children', to='drive.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'base_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['user', 'parent'], name='drive_folder_user_parent_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', False)), fields=('user', 'parent', 'name'), name='drive_folder_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', True)), fields=('user', 'name'), name='drive_root_folder_name_unique'),
                ],
            },
            managers=[
                ('objects', models.Manager()),
                ('all_objects', models.Manager()),
            ],
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('file', models.FileField(help_text='Key in storage: {user_id}/folder/path/{id}.ext', max_length=1024, upload_to='')),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('mime_type', models.CharField(max_length=255)),
                ('checksum_sha256', models.CharField(blank=True, default='', help_text='SHA256 hash for integrity verification', max_length=64)),
                ('is_shared', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='files', to='drive.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['name'],
                'base_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['user', 'folder'], name='drive_file_user_folder_idx')],
            },
            managers=[
                ('objects', models.Manager()),
                ('all_objects', models.Manager()),
            ],
        ),
    ]
