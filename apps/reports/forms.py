from datetime import timedelta

from django import forms
from django.utils import timezone
from crispy_forms.helper import FormHelper
from crispy_forms.layout import Layout, Row, Column, Submit

from apps.accounts.models import User


class MonthForm(forms.Form):

    month = forms.DateField(
        required=False,
        input_formats=['%Y-%m'],
        widget=forms.DateInput(attrs={'type': 'month', 'class': 'form-control'}, format='%Y-%m'),
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = FormHelper()
        self.helper.form_method = 'get'
        self.helper.form_tag = True
        self.helper.layout = Layout(
            Row(
                Column('month', css_class='col-md-4'),
                Column(Submit('submit', 'Show', css_class='btn btn-primary mt-4'), css_class='col-md-2'),
            )
        )

    def period(self):
        """(year, month); defaults to the current month"""
        value = self.cleaned_data.get('month') if self.is_valid() else None
        value = value or timezone.localdate()
        return value.year, value.month


class DateRangeForm(forms.Form):

    start_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'type': 'date', 'class': 'form-control'}))
    end_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'type': 'date', 'class': 'form-control'}))
    telecaller = forms.ModelChoiceField(
        queryset=User.objects.none(),
        required=False,
        empty_label='All telecallers',
        widget=forms.Select(attrs={'class': 'form-select'}),
    )

    def __init__(self, *args, default_days=7, **kwargs):
        super().__init__(*args, **kwargs)
        self.default_days = default_days
        self.fields['telecaller'].queryset = User.objects.telecallers()

        self.helper = FormHelper()
        self.helper.form_method = 'get'
        self.helper.layout = Layout(
            Row(
                Column('start_date', css_class='col-md-3'),
                Column('end_date', css_class='col-md-3'),
                Column('telecaller', css_class='col-md-3'),
                Column(Submit('submit', 'Apply', css_class='btn btn-primary mt-4'), css_class='col-md-2'),
            )
        )

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_date')
        end = cleaned_data.get('end_date')
        if start and end and end < start:
            raise forms.ValidationError('End date cannot be before start date')
        return cleaned_data

    def date_range(self):
        """Inclusive (start, end) dates, defaulting to the last `default_days` days"""
        today = timezone.localdate()
        data = self.cleaned_data if self.is_valid() else {}
        end = data.get('end_date') or today
        start = data.get('start_date') or end - timedelta(days=self.default_days - 1)
        return start, end

    def selected_users(self):
        data = self.cleaned_data if self.is_valid() else {}
        if data.get('telecaller'):
            return [data['telecaller']]
        return None
