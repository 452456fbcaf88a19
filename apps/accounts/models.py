# Models:
# 1. User - Custom user model (email login, CRM role, targets)


from decimal import Decimal

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _


# USER MANAGER (handles user creation)
class UserManager(BaseUserManager):
    """
    Custom user manager for User model

    Provides methods to:
    - Create regular users (telecallers, KYC staff, team leaders)
    - Create superusers (admins)
    - Handle email-based authentication
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user

        Args:
            email (str): User's email address (required)
            password (str): User's password (required)
            **extra_fields: Additional fields (full_name, role, etc.)

        Returns:
            User: The created user object

        Raises:
            ValueError: If email is not provided

        Example:
            user = User.objects.create_user(
                email='priya@loandesk.in',
                password='securepass123',
                full_name='Priya Sharma',
                role='telecaller'
            )
        """
        if not email:
            raise ValueError(_('Users must have an email address'))

        # Normalize email (convert domain to lowercase)
        email = self.normalize_email(email)

        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser (admin)

        Superusers have all permissions and can access admin panel
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)

    def telecallers(self):
        """Active telecallers, alphabetical (assignment drop-downs)"""
        return self.filter(role=User.ROLE_TELECALLER, is_active=True).order_by('full_name')

    def kyc_team(self):
        return self.filter(role=User.ROLE_KYC, is_active=True).order_by('full_name')


# USER MODEL
class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model for LoanDesk

    Features:
    - Email-based authentication (no username)
    - Role-based access (telecaller, team leader, KYC team, admin)
    - Targets used by the telecaller dashboard ticker
    - Activity tracking (login count, last login IP)
    """

    ROLE_TELECALLER = 'telecaller'
    ROLE_TEAM_LEADER = 'team_leader'
    ROLE_KYC = 'kyc_team'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = [
        (ROLE_TELECALLER, _('Telecaller')),
        (ROLE_TEAM_LEADER, _('Team Leader')),
        (ROLE_KYC, _('KYC Team')),
        (ROLE_ADMIN, _('Administrator')),
    ]

    # Email as primary identifier (instead of username)
    email = models.EmailField(_('email address'), unique=True, max_length=255, db_index=True, help_text=_('Required. Used for login.'))
    full_name = models.CharField(_('full name'), max_length=150, help_text=_('Display name (e.g., Priya Sharma)'))

    # Phone validator (accepts: +919876543210, 9876543210, etc.)
    phone_validator = RegexValidator(regex=r'^\+?\d{10,15}$', message=_('Phone number must be 10 to 15 digits, optionally starting with +.'))
    phone = models.CharField(_('phone number'), validators=[phone_validator], max_length=16, blank=True, null=True, help_text=_('Contact phone number (e.g., +919876543210)'))

    role = models.CharField(_('role'), max_length=20, choices=ROLE_CHOICES, default=ROLE_TELECALLER, db_index=True, help_text=_('Controls which dashboard and actions the user gets'))
    department = models.CharField(_('department'), max_length=100, blank=True, help_text=_('e.g., Personal Loans, Business Loans, KYC'))

    monthly_target = models.DecimalField(_('monthly target'), max_digits=14, decimal_places=2, default=Decimal('2000000'), help_text=_('Disbursement target for the month (INR)'))
    daily_call_target = models.PositiveIntegerField(_('daily call target'), default=100, help_text=_('Number of calls expected per day'))

    login_count = models.PositiveIntegerField(_('login count'), default=0, help_text=_('Number of times user has logged in'))
    last_login_ip = models.GenericIPAddressField(_('last login IP'), blank=True, null=True, help_text=_('IP address of last login'))
    is_active = models.BooleanField(_('active'), default=True, help_text=_('Designates whether this user should be treated as active. Unselect this instead of deleting accounts.'))
    is_staff = models.BooleanField(_('staff status'), default=False, help_text=_('Designates whether the user can log into admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now, help_text=_('Date when user account was created'))
    updated_at = models.DateTimeField(_('updated at'), auto_now=True, help_text=_('Last time user profile was updated'))

    # MANAGER & SETTINGS
    objects = UserManager()

    USERNAME_FIELD = 'email'

    # Fields required when creating superuser (in addition to email and password)
    REQUIRED_FIELDS = ['full_name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['full_name']
        indexes = [
            models.Index(fields=['role', 'is_active']),
        ]

    def __str__(self):
        """
        Returns:
            str: "Priya Sharma (priya@loandesk.in)"
        """
        if self.full_name:
            return f"{self.full_name} ({self.email})"
        return self.email

    # HELPER METHODS
    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        if self.full_name:
            return self.full_name.split()[0]
        return self.email

    def get_initials(self):
        parts = self.full_name.split()
        if len(parts) >= 2:
            return f"{parts[0][0]}{parts[1][0]}".upper()
        elif parts:
            return parts[0][0].upper()
        return self.email[0].upper()

    # ROLE CHECKS
    def is_admin(self):

        return self.role == self.ROLE_ADMIN or self.is_superuser

    def is_team_leader(self):

        return self.role == self.ROLE_TEAM_LEADER

    def is_telecaller(self):

        return self.role == self.ROLE_TELECALLER

    def is_kyc(self):

        return self.role == self.ROLE_KYC

    def can_manage_team(self):
        """Admins and team leaders see team-wide pages"""
        return self.is_admin() or self.is_team_leader()

    # ACTIVITY TRACKING
    def increment_login_count(self, ip_address=None):
        """
        Increment login count and update last login IP

        Called when user logs in successfully
        """
        self.login_count += 1
        if ip_address:
            self.last_login_ip = ip_address
        self.save(update_fields=['login_count', 'last_login_ip'])
