from django import forms
from django.db.models import Q
from django.utils import timezone

from users.models import User

from .models import Autopsy, Body, BodyRelease, StorageUnit, Task


class BodyForm(forms.ModelForm):
    """Form for registering and updating bodies"""

    class Meta:
        model = Body
        fields = [
            'full_name', 'age', 'gender', 'date_of_death', 'intake_time', 'storage',
            'next_of_kin_name', 'next_of_kin_relationship', 'next_of_kin_phone', 'next_of_kin_address',
            'notes', 'death_certificate',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # A body can only go into a free unit, or stay where it already is
        allowed = Q(status=StorageUnit.AVAILABLE)
        if not self.instance._state.adding and self.instance.storage_id:
            allowed |= Q(pk=self.instance.storage_id)
        self.fields['storage'].queryset = StorageUnit.objects.filter(allowed)
        self.fields['storage'].error_messages['invalid_choice'] = "Storage unit is not available."
        if self.instance._state.adding:
            self.fields['storage'].required = True

    def clean_full_name(self):
        full_name = self.cleaned_data.get('full_name', '').strip()
        if len(full_name) < 2:
            raise forms.ValidationError("Full name must be at least 2 characters.")
        return full_name

    def clean_age(self):
        age = self.cleaned_data.get('age')
        if age is not None and age > 150:
            raise forms.ValidationError("Age must be between 0 and 150.")
        return age

    def clean_next_of_kin_address(self):
        address = self.cleaned_data.get('next_of_kin_address', '').strip()
        if len(address) < 5:
            raise forms.ValidationError("Address must be at least 5 characters.")
        return address

    def clean(self):
        cleaned_data = super().clean()
        date_of_death = cleaned_data.get('date_of_death')
        intake_time = cleaned_data.get('intake_time')

        if date_of_death and date_of_death > timezone.localdate():
            raise forms.ValidationError("Date of death cannot be in the future.")

        if date_of_death and intake_time:
            if timezone.localtime(intake_time).date() < date_of_death:
                raise forms.ValidationError("Intake time cannot be before the date of death.")

        return cleaned_data


class StorageUnitForm(forms.ModelForm):
    class Meta:
        model = StorageUnit
        fields = ['name', 'type', 'location', 'temperature']


class StorageStatusForm(forms.Form):
    status = forms.ChoiceField(
        choices=StorageUnit.STATUS_CHOICES,
        error_messages={'invalid_choice': 'Invalid status', 'required': 'Invalid status'},
    )


class AutopsyForm(forms.ModelForm):
    """Scheduling form; only pathologists can be assigned"""

    class Meta:
        model = Autopsy
        fields = ['body', 'pathologist', 'scheduled_date', 'notes']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['pathologist'].queryset = User.objects.filter(role=User.PATHOLOGIST, is_active=True)
        self.fields['pathologist'].error_messages['invalid_choice'] = "Pathologist not found."
        self.fields['body'].error_messages['invalid_choice'] = "Body not found."


class AutopsyUpdateForm(forms.ModelForm):
    class Meta:
        model = Autopsy
        fields = ['status', 'cause_of_death', 'report', 'notes', 'scheduled_date']

    def __init__(self, *args, allow_reschedule=True, **kwargs):
        super().__init__(*args, **kwargs)
        if not allow_reschedule:
            del self.fields['scheduled_date']

    def clean_status(self):
        status = self.cleaned_data.get('status')
        if not self.instance.can_transition_to(status):
            raise forms.ValidationError(
                f"Cannot move autopsy from {self.instance.status} to {status}."
            )
        return status


class TaskForm(forms.ModelForm):
    class Meta:
        model = Task
        fields = ['title', 'description', 'type', 'assigned_to', 'due_date', 'priority', 'body', 'status']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = User.objects.filter(is_active=True)
        self.fields['assigned_to'].error_messages['invalid_choice'] = "Assignee not found."
        self.fields['priority'].required = False
        self.fields['status'].required = False

    def clean_title(self):
        title = self.cleaned_data.get('title', '').strip()
        if len(title) < 2:
            raise forms.ValidationError("Title must be at least 2 characters.")
        return title

    def clean_priority(self):
        return self.cleaned_data.get('priority') or 'medium'

    def clean_status(self):
        return self.cleaned_data.get('status') or self.instance.status or Task.PENDING


class TaskStatusForm(forms.ModelForm):
    """The only change an assignee may make to their own task"""

    class Meta:
        model = Task
        fields = ['status']


class BodyReleaseForm(forms.ModelForm):
    class Meta:
        model = BodyRelease
        fields = ['body', 'receiver_name', 'receiver_id', 'relationship', 'documents', 'notes']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['body'].error_messages['invalid_choice'] = "Body not found."
        self.fields['documents'].required = False

    def clean_receiver_name(self):
        name = self.cleaned_data.get('receiver_name', '').strip()
        if len(name) < 2:
            raise forms.ValidationError("Receiver name must be at least 2 characters.")
        return name

    def clean_documents(self):
        documents = self.cleaned_data.get('documents') or []
        if not isinstance(documents, list) or not all(isinstance(d, str) for d in documents):
            raise forms.ValidationError("Documents must be a list of strings.")
        return documents


class ReleaseStatusForm(forms.Form):
    status = forms.ChoiceField(
        choices=BodyRelease.STATUS_CHOICES,
        error_messages={'invalid_choice': 'Invalid status', 'required': 'Invalid status'},
    )
    notes = forms.CharField(required=False)
