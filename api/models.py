from decimal import Decimal

from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication"""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', 'admin')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Platform account; NGO privileges are granted through NgoVerification"""

    ROLE_CHOICES = [
        ('donor', 'Donor'),
        ('ngo', 'NGO'),
        ('admin', 'Admin'),
    ]

    username = None
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='donor')
    is_ngo = models.BooleanField(default=False)
    phone_number = models.CharField(
        max_length=15,
        blank=True,
        validators=[RegexValidator(
            regex=r'^\+?1?\d{9,15}$',
            message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed."
        )]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    def __str__(self):
        return f"{self.email} ({self.get_role_display()})"

    @property
    def display_name(self):
        return f"{self.first_name} {self.last_name}".strip() or self.email.split('@')[0]

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
            models.Index(fields=['role'], name='user_role_idx'),
        ]


class Campaign(models.Model):
    """A fundraising case with a target and a running collected amount"""

    CAUSE_CHOICES = [
        ('Medical', 'Medical'),
        ('Education', 'Education'),
        ('Disaster Relief', 'Disaster Relief'),
        ('Animal Welfare', 'Animal Welfare'),
        ('Community', 'Community'),
        ('Other', 'Other'),
    ]

    unique_code = models.CharField(max_length=9, unique=True, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField()
    cause = models.CharField(max_length=30, choices=CAUSE_CHOICES, default='Other')
    target_amount = models.DecimalField(max_digits=12, decimal_places=2)
    collected_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))

    beneficiary_name = models.CharField(max_length=200, blank=True)
    image_url = models.URLField(blank=True)

    hospital_name = models.CharField(max_length=200, blank=True)
    hospital_email = models.EmailField(blank=True)
    is_temporary = models.BooleanField(
        default=False,
        help_text="Temporary campaigns skip hospital verification"
    )
    verified = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='campaigns'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.unique_code} - {self.title}"

    @property
    def needs_hospital_verification(self):
        return self.cause == 'Medical' and bool(self.hospital_email) and not self.is_temporary

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_by', '-created_at'], name='campaign_creator_idx'),
            models.Index(fields=['verified'], name='campaign_verified_idx'),
        ]


class Donation(models.Model):
    """A single monetary contribution; counted into Campaign.collected_amount"""

    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='donations')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    tip_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    donor = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='donations'
    )
    donor_name = models.CharField(max_length=200, blank=True)
    message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.amount} to {self.campaign.unique_code} by {self.donor_name or 'Anonymous'}"

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['campaign', '-created_at'], name='donation_campaign_idx'),
            models.Index(fields=['donor', '-created_at'], name='donation_donor_idx'),
        ]


class Review(models.Model):
    """Public testimonial shown on the landing page"""

    RATING_CHOICES = [
        (1, '1 Star - Poor'),
        (2, '2 Stars - Fair'),
        (3, '3 Stars - Good'),
        (4, '4 Stars - Very Good'),
        (5, '5 Stars - Excellent'),
    ]

    reviewer_name = models.CharField(max_length=200)
    rating = models.IntegerField(
        choices=RATING_CHOICES,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True)
    user = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviews'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.reviewer_name}: {self.rating} stars"

    class Meta:
        ordering = ['-created_at', '-id']


class Ticket(models.Model):
    """Support ticket raised from the help page"""

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('in_progress', 'In Progress'),
        ('resolved', 'Resolved'),
        ('closed', 'Closed'),
    ]

    name = models.CharField(max_length=200)
    email = models.EmailField()
    subject = models.CharField(max_length=200)
    message = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    admin_notes = models.TextField(blank=True)
    user = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tickets'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"#{self.pk} {self.subject} ({self.status})"

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='ticket_status_idx'),
        ]


class NgoVerification(models.Model):
    """An organisation's request to be recognised as an NGO"""

    user = models.OneToOneField('User', on_delete=models.CASCADE, related_name='ngo_verification')
    organization_name = models.CharField(max_length=200)
    registration_number = models.CharField(max_length=100)
    document_url = models.URLField(blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    verified = models.BooleanField(default=False)
    requested_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.organization_name} ({'verified' if self.verified else 'pending'})"

    class Meta:
        ordering = ['-requested_at', '-id']
