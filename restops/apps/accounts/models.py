# accounts/models.py
from django.db import models

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager


class UserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        """Creates and saves a user with the given email and password"""
        if not email:
            raise ValueError('Users must have an email address')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        """Creates a platform super admin (not bound to a restaurant)"""
        extra_fields.setdefault('is_super_admin', True)

        if extra_fields.get('is_super_admin') is not True:
            raise ValueError('Superuser must have is_super_admin=True')

        return self.create_user(email, password, **extra_fields)

    def create_staff_user(self, email, password, restaurant, branches=None, **extra_fields):
        """Creates a staff member of a restaurant, optionally limited to some branches"""
        extra_fields.setdefault('is_staff_member', True)

        if extra_fields.get('is_staff_member') is not True:
            raise ValueError('Staff user must have is_staff_member=True')

        user = self.create_user(email, password, restaurant=restaurant, **extra_fields)

        if branches:
            user.branches.set(branches)

        return user


class User(AbstractBaseUser):
    email = models.EmailField('email address', unique=True)
    first_name = models.CharField('first name', max_length=100, blank=True)
    last_name = models.CharField('last name', max_length=100, blank=True)

    restaurant = models.ForeignKey(
        'branches.Restaurant', null=True, blank=True, on_delete=models.CASCADE, related_name='users'
    )

    is_super_admin = models.BooleanField('super admin status', default=False)
    is_restaurant_admin = models.BooleanField('restaurant admin status', default=False)
    is_staff_member = models.BooleanField('staff member status', default=False)
    is_active = models.BooleanField(default=True)

    branches = models.ManyToManyField('branches.Branch', blank=True, related_name='staff')

    created_at = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.email})".strip()

    def has_restaurant_access(self, restaurant_id):
        if self.is_super_admin:
            return True
        return self.restaurant_id is not None and str(self.restaurant_id) == str(restaurant_id)

    def has_branch_access(self, branch):
        """Restaurant admins see every branch of their restaurant; staff only assigned ones."""
        if self.is_super_admin:
            return True
        if not self.has_restaurant_access(branch.restaurant_id):
            return False
        if self.is_restaurant_admin:
            return True
        return self.branches.filter(pk=branch.pk).exists()

    def save(self, *args, **kwargs):
        """Ensure role consistency on save"""
        if sum([self.is_super_admin, self.is_restaurant_admin, self.is_staff_member]) > 1:
            raise ValueError("User can only have one role at a time")
        if (self.is_restaurant_admin or self.is_staff_member) and self.restaurant_id is None:
            raise ValueError("Restaurant admins and staff must belong to a restaurant")

        super().save(*args, **kwargs)
