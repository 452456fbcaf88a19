from django import forms
from django.contrib.auth.forms import UserCreationForm
from django.contrib.auth import get_user_model
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from crispy_forms.helper import FormHelper
from crispy_forms.layout import Layout, Fieldset, Submit, Div, Field, HTML
from crispy_forms.bootstrap import FormActions

User = get_user_model()

TARGET_FIELDS = ('monthly_target', 'daily_call_target')

USER_WIDGETS = {
    'full_name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('Priya Sharma')}),
    'phone': forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('+919876543210')}),
    'department': forms.TextInput(attrs={'class': 'form-control', 'placeholder': _('e.g., Personal Loans')}),
    'role': forms.Select(attrs={'class': 'form-select'}),
    'monthly_target': forms.NumberInput(attrs={'class': 'form-control', 'step': '1000'}),
    'daily_call_target': forms.NumberInput(attrs={'class': 'form-control'}),
}


def _pair(first, second):
    return Div(Div(first, css_class='col-md-6'), Div(second, css_class='col-md-6'), css_class='row')


def _cancel(url_name):
    return HTML(f'<a href="{{% url \'{url_name}\' %}}" class="btn btn-secondary">Cancel</a>')


class LoginForm(forms.Form):
    email = forms.EmailField(
        label=_('Email Address'),
        max_length=255,
        widget=forms.EmailInput(attrs={'class': 'form-control', 'placeholder': _('name@loandesk.in'), 'autofocus': True}),
    )
    password = forms.CharField(label=_('Password'), widget=forms.PasswordInput(attrs={'class': 'form-control'}))
    remember = forms.BooleanField(label=_('Keep me signed in'), required=False, widget=forms.CheckboxInput(attrs={'class': 'form-check-input'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Field('email', css_class='mb-3'),
            Field('password', css_class='mb-3'),
            'remember',
            Submit('submit', _('Sign in'), css_class='btn btn-primary w-100 mt-2'),
        )

    def clean_email(self):
        return self.cleaned_data['email'].lower().strip()


class UserEditForm(forms.ModelForm):
    """
    Profile / user edit

    Telecallers editing themselves only get the personal fields; role,
    targets and the active flag are admin-only.
    """

    class Meta:
        model = User
        fields = ['full_name', 'phone', 'department', 'role', 'monthly_target', 'daily_call_target', 'is_active']
        widgets = USER_WIDGETS
        help_texts = {
            'role': _('Telecaller: own leads | Team Leader: team view | KYC: verification queue | Admin: everything'),
        }

    def __init__(self, *args, can_edit_all_fields=False, **kwargs):
        super().__init__(*args, **kwargs)

        if not can_edit_all_fields:
            for name in ('role', 'is_active') + TARGET_FIELDS:
                del self.fields[name]

        self.helper = FormHelper()
        self.helper.form_method = 'post'

        layout = [Fieldset(_('Personal Information'), _pair('full_name', 'phone'), 'department')]
        if can_edit_all_fields:
            layout.append(Fieldset(_('Role, Targets & Status'), _pair('role', 'is_active'), _pair(*TARGET_FIELDS)))
            cancel = _cancel('accounts:user_list')
        else:
            cancel = _cancel('accounts:profile')

        layout.append(FormActions(Submit('submit', _('Update'), css_class='btn btn-primary'), cancel))
        self.helper.layout = Layout(*layout)


class UserCreateForm(UserCreationForm):
    """New staff account; targets fall back to the model defaults when left blank"""

    class Meta:
        model = User
        fields = ['email', 'full_name', 'phone', 'department', 'role', 'monthly_target', 'daily_call_target']
        widgets = dict(USER_WIDGETS, email=forms.EmailInput(attrs={'class': 'form-control', 'placeholder': _('user@loandesk.in')}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['full_name'].required = True
        for name in TARGET_FIELDS:
            self.fields[name].required = False
        for name in ('password1', 'password2'):
            self.fields[name].widget.attrs['class'] = 'form-control'

        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Fieldset(_('Login'), 'email', _pair('password1', 'password2')),
            Fieldset(_('Person'), 'full_name', _pair('phone', 'department')),
            Fieldset(_('Role & Targets'), 'role', _pair(*TARGET_FIELDS)),
            FormActions(Submit('submit', _('Create User'), css_class='btn btn-primary'), _cancel('accounts:user_list')),
        )

    def clean_email(self):
        email = self.cleaned_data.get('email', '').lower().strip()
        if User.objects.filter(email=email).exists():
            raise ValidationError(_('A user with this email already exists.'))
        return email

    def clean_phone(self):
        return self.cleaned_data.get('phone') or None

    def _target_or_default(self, name):
        value = self.cleaned_data.get(name)
        if value is None:
            return User._meta.get_field(name).get_default()
        return value

    def clean_monthly_target(self):
        return self._target_or_default('monthly_target')

    def clean_daily_call_target(self):
        return self._target_or_default('daily_call_target')
