import uuid
from django.contrib.auth.hashers import check_password, make_password
from django.db import models
from django.db.models import F
from django.utils import timezone


class Principal(models.Model):
    """Credentials and contact details shared by users, agents and admins.

    Each concrete principal lives in its own table, so the same email may be
    registered once per role. ``role`` is written into issued tokens and used
    to pick the table back out when a request is authenticated.
    """
    role = None

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    phone = models.CharField(max_length=20, blank=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # DRF treats any resolved principal as an authenticated request.user
    is_authenticated = True
    is_anonymous = False

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.name} <{self.email}>"

    def set_password(self, raw_password):
        self.password = make_password(raw_password)

    def check_password(self, raw_password):
        return check_password(raw_password, self.password)

    def record_login(self):
        self.last_login = timezone.now()
        self.save(update_fields=['last_login', 'updated_at'])


class User(Principal):
    role = 'user'

    address = models.CharField(max_length=255, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    profile_image = models.CharField(max_length=500, blank=True)
    email_verified = models.BooleanField(default=False)
    phone_verified = models.BooleanField(default=False)

    # Notification preferences
    notify_email = models.BooleanField(default=True)
    notify_sms = models.BooleanField(default=False)
    notify_push = models.BooleanField(default=True)
    newsletter = models.BooleanField(default=False)

    login_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['created_at']),
            models.Index(fields=['last_login']),
        ]

    def record_login(self):
        self.last_login = timezone.now()
        User.objects.filter(pk=self.pk).update(
            last_login=self.last_login,
            login_count=F('login_count') + 1
        )
        self.refresh_from_db(fields=['login_count'])

    @property
    def notification_settings(self):
        return {
            'email': self.notify_email,
            'sms': self.notify_sms,
            'push': self.notify_push,
            'newsletter': self.newsletter,
        }


class Agent(Principal):
    role = 'agent'

    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    )

    certificate = models.FileField(upload_to='certificates/')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    status_changed_at = models.DateTimeField(null=True, blank=True)

    company_name = models.CharField(max_length=150, blank=True)
    address = models.CharField(max_length=255, blank=True)
    website = models.URLField(blank=True)
    social_media = models.JSONField(default=dict, blank=True)
    bio = models.TextField(blank=True, max_length=1000)
    experience_years = models.PositiveIntegerField(default=0)
    specialization = models.JSONField(default=list, blank=True)
    languages = models.JSONField(default=list, blank=True)

    # Denormalized from reviews
    average_rating = models.FloatField(default=0)
    total_reviews = models.PositiveIntegerField(default=0)

    verified = models.BooleanField(default=False)
    featured = models.BooleanField(default=False)

    class Meta:
        db_table = 'agents'
        indexes = [
            models.Index(fields=['status', 'created_at']),
        ]

    @property
    def is_approved(self):
        return self.status == 'approved'

    def can_be_decided(self, new_status):
        return new_status in ('approved', 'rejected')


class Admin(Principal):
    role = 'admin'

    class Meta:
        db_table = 'admins'


# Closed set of principal kinds a token may name
PRINCIPAL_MODELS = {
    User.role: User,
    Agent.role: Agent,
    Admin.role: Admin,
}
