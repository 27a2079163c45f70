"""
System-wide settings stored as a single database row.

Notification toggles gate both email delivery and the scheduled sweeps.
Project and task defaults are applied when the API creates those objects.
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class SystemSettings(models.Model):
    """
    Singleton settings row (always pk=1).

    Use SystemSettings.load() rather than querying directly; it creates the
    row with defaults the first time it is read.
    """

    SINGLETON_PK = 1

    class Weekday(models.TextChoices):
        MONDAY = 'monday', 'Monday'
        TUESDAY = 'tuesday', 'Tuesday'
        WEDNESDAY = 'wednesday', 'Wednesday'
        THURSDAY = 'thursday', 'Thursday'
        FRIDAY = 'friday', 'Friday'
        SATURDAY = 'saturday', 'Saturday'
        SUNDAY = 'sunday', 'Sunday'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'

    class DefaultStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        IN_PROGRESS = 'in-progress', 'In Progress'

    # ==========================================================================
    # Notifications
    # ==========================================================================
    email_notifications = models.BooleanField(
        default=True,
        help_text='Master switch: when off, no notification email is sent.',
    )
    task_deadline_reminder = models.BooleanField(default=True)
    deadline_reminder_days = models.PositiveSmallIntegerField(
        default=2,
        validators=[MinValueValidator(1), MaxValueValidator(7)],
        help_text='Remind assignees this many days before a task is due.',
    )
    project_status_updates = models.BooleanField(default=True)
    status_change_notification = models.BooleanField(default=True)
    new_project_assignment = models.BooleanField(default=True)
    weekly_reports = models.BooleanField(default=True)
    weekly_report_day = models.CharField(
        max_length=10,
        choices=Weekday.choices,
        default=Weekday.FRIDAY,
    )
    overdue_tasks = models.BooleanField(default=True)
    team_updates = models.BooleanField(default=True)
    system_updates = models.BooleanField(default=True)

    # ==========================================================================
    # Project defaults
    # ==========================================================================
    default_project_priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    default_project_status = models.CharField(
        max_length=20,
        choices=DefaultStatus.choices,
        default=DefaultStatus.PENDING,
    )
    auto_assign_deadline = models.BooleanField(
        default=False,
        help_text='Set end_date on new projects that do not provide one.',
    )
    default_deadline_days = models.PositiveSmallIntegerField(
        default=7,
        validators=[MinValueValidator(1), MaxValueValidator(365)],
    )

    # ==========================================================================
    # Task defaults
    # ==========================================================================
    default_task_priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    require_estimated_hours = models.BooleanField(default=True)

    # ==========================================================================
    # System
    # ==========================================================================
    allow_self_registration = models.BooleanField(default=False)

    last_updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'system settings'
        verbose_name_plural = 'system settings'

    def __str__(self):
        return 'System settings'

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # The row is permanent; reset fields through the API instead
        return 0, {}

    @classmethod
    def load(cls):
        """Return the settings row, creating it with defaults if missing."""
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj
