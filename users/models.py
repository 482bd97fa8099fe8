from django.db import models
from django.contrib.auth.models import AbstractUser
from phonenumber_field.modelfields import PhoneNumberField


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('owner', 'Parking Space Owner'),
        ('driver', 'Regular User'),
        ('both', 'Both'),
    )

    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default='driver')
    phone_number = PhoneNumberField(unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.username} ({self.get_user_type_display()})"
