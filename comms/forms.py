from django import forms

from users.models import User

from .models import Notification


class NotificationForm(forms.ModelForm):
    """Admin-authored notification; the payload names the recipient as user_id."""

    user_id = forms.ModelChoiceField(
        queryset=User.objects.filter(is_active=True),
        error_messages={'invalid_choice': 'User not found.'},
    )

    class Meta:
        model = Notification
        fields = ['title', 'message', 'type', 'action_url']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['type'].required = False

    def clean_type(self):
        return self.cleaned_data.get('type') or Notification.INFO

    def save(self, commit=True):
        notification = super().save(commit=False)
        notification.user = self.cleaned_data['user_id']
        if commit:
            notification.save()
        return notification
