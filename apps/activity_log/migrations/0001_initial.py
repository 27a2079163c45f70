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
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('user_created', 'User Created'), ('user_updated', 'User Updated'), ('user_deleted', 'User Deleted'), ('project_created', 'Project Created'), ('project_updated', 'Project Updated'), ('project_deleted', 'Project Deleted'), ('project_status_changed', 'Project Status Changed'), ('task_created', 'Task Created'), ('task_updated', 'Task Updated'), ('task_deleted', 'Task Deleted'), ('task_status_changed', 'Task Status Changed'), ('login', 'Login'), ('logout', 'Logout')], db_index=True, max_length=30)),
                ('target_type', models.CharField(choices=[('user', 'User'), ('project', 'Project'), ('task', 'Task'), ('system', 'System')], max_length=10)),
                ('target_id', models.PositiveBigIntegerField(blank=True, null=True)),
                ('description', models.TextField(help_text='Human-readable description of the change')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('actor', models.ForeignKey(help_text='User who performed the action', on_delete=django.db.models.deletion.PROTECT, related_name='activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'activity',
                'verbose_name_plural': 'activities',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['actor', '-created_at'], name='activity_actor_created_idx'),
                    models.Index(fields=['action', '-created_at'], name='activity_action_created_idx'),
                    models.Index(fields=['target_type', 'target_id'], name='activity_target_idx'),
                ],
            },
        ),
    ]
