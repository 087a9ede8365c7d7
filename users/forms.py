from django import forms
from django.contrib.auth import password_validation

from .models import User


class UserCreateForm(forms.ModelForm):
    password = forms.CharField(min_length=6, strip=False)

    class Meta:
        model = User
        fields = ['name', 'email', 'role', 'phone', 'password']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['role'].required = True
        self.fields['phone'].required = False

    def clean_name(self):
        name = self.cleaned_data.get('name', '').strip()
        if len(name) < 2:
            raise forms.ValidationError("Name must be at least 2 characters.")
        return name

    def clean_email(self):
        email = User.objects.normalize_email(self.cleaned_data.get('email'))
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("A user with this email already exists.")
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data['password'])
        user.is_staff = user.role == User.ADMIN
        if commit:
            user.save()
        return user


class UserUpdateForm(forms.ModelForm):
    """Profile and account changes; role and status are dropped for non-admins."""
    STATUS_CHOICES = [('active', 'Active'), ('inactive', 'Inactive')]

    status = forms.ChoiceField(choices=STATUS_CHOICES, required=False)

    class Meta:
        model = User
        fields = ['name', 'email', 'role', 'phone', 'status']

    def __init__(self, *args, allow_admin_fields=True, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['phone'].required = False
        if not allow_admin_fields:
            del self.fields['role']
            del self.fields['status']

    def clean_email(self):
        email = User.objects.normalize_email(self.cleaned_data.get('email'))
        clash = User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk)
        if clash.exists():
            raise forms.ValidationError("A user with this email already exists.")
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        status = self.cleaned_data.get('status')
        if status:
            user.is_active = status == 'active'
        if 'role' in self.cleaned_data:
            user.is_staff = user.role == User.ADMIN
        if commit:
            user.save()
        return user


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)


class ChangePasswordForm(forms.Form):
    current_password = forms.CharField(strip=False)
    new_password = forms.CharField(strip=False)

    def __init__(self, user, *args, **kwargs):
        self.user = user
        super().__init__(*args, **kwargs)

    def clean_current_password(self):
        current = self.cleaned_data.get('current_password')
        if not self.user.check_password(current):
            raise forms.ValidationError("Current password is incorrect.")
        return current

    def clean_new_password(self):
        new_password = self.cleaned_data.get('new_password')
        password_validation.validate_password(new_password, self.user)
        return new_password

    def save(self):
        self.user.set_password(self.cleaned_data['new_password'])
        self.user.save(update_fields=['password', 'updated_at'])
        return self.user
