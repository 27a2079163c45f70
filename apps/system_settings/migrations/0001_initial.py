import django.core.validators
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
            name='SystemSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email_notifications', models.BooleanField(default=True, help_text='Master switch: when off, no notification email is sent.')),
                ('task_deadline_reminder', models.BooleanField(default=True)),
                ('deadline_reminder_days', models.PositiveSmallIntegerField(default=2, help_text='Remind assignees this many days before a task is due.', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(7)])),
                ('project_status_updates', models.BooleanField(default=True)),
                ('status_change_notification', models.BooleanField(default=True)),
                ('new_project_assignment', models.BooleanField(default=True)),
                ('weekly_reports', models.BooleanField(default=True)),
                ('weekly_report_day', models.CharField(choices=[('monday', 'Monday'), ('tuesday', 'Tuesday'), ('wednesday', 'Wednesday'), ('thursday', 'Thursday'), ('friday', 'Friday'), ('saturday', 'Saturday'), ('sunday', 'Sunday')], default='friday', max_length=10)),
                ('overdue_tasks', models.BooleanField(default=True)),
                ('team_updates', models.BooleanField(default=True)),
                ('system_updates', models.BooleanField(default=True)),
                ('default_project_priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('default_project_status', models.CharField(choices=[('pending', 'Pending'), ('in-progress', 'In Progress')], default='pending', max_length=20)),
                ('auto_assign_deadline', models.BooleanField(default=False, help_text='Set end_date on new projects that do not provide one.')),
                ('default_deadline_days', models.PositiveSmallIntegerField(default=7, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(365)])),
                ('default_task_priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('require_estimated_hours', models.BooleanField(default=True)),
                ('allow_self_registration', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('last_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'system settings',
                'verbose_name_plural': 'system settings',
            },
        ),
    ]
