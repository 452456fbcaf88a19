from decimal import Decimal

from django import forms
from crispy_forms.helper import FormHelper
from crispy_forms.layout import Layout, Row, Column, Field, Submit, HTML
from crispy_forms.bootstrap import FormActions

from .geo import parse_coordinates
from .models import Office


class OfficeForm(forms.ModelForm):
    """
    Office geofence

    Coordinates can be pasted as one "lat,lng" string (as copied from a map)
    instead of filling both fields.
    """

    coordinates = forms.CharField(
        required=False,
        label='Paste coordinates',
        help_text='e.g. 19.1197,72.8468',
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'lat,lng'}),
    )

    class Meta:
        model = Office
        fields = ['name', 'address', 'latitude', 'longitude', 'radius_m', 'is_active']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'address': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'latitude': forms.NumberInput(attrs={'class': 'form-control', 'step': 'any'}),
            'longitude': forms.NumberInput(attrs={'class': 'form-control', 'step': 'any'}),
            'radius_m': forms.NumberInput(attrs={'class': 'form-control', 'min': 10}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['latitude'].required = False
        self.fields['longitude'].required = False

        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.layout = Layout(
            Field('name'),
            Field('address'),
            Field('coordinates'),
            HTML('<p class="text-muted small">or enter them separately</p>'),
            Row(
                Column('latitude', css_class='col-md-6'),
                Column('longitude', css_class='col-md-6'),
            ),
            Row(
                Column('radius_m', css_class='col-md-6'),
                Column('is_active', css_class='col-md-6 mt-4'),
            ),
            FormActions(
                Submit('submit', 'Save Office', css_class='btn btn-primary'),
                HTML('<a href="{% url \'core:office_list\' %}" class="btn btn-secondary">Cancel</a>'),
            )
        )

    def clean(self):
        cleaned_data = super().clean()
        pasted = cleaned_data.get('coordinates', '').strip()

        if pasted:
            point = parse_coordinates(pasted)
            if point is None:
                self.add_error('coordinates', 'Enter coordinates as "latitude,longitude"')
                return cleaned_data
            cleaned_data['latitude'] = Decimal(str(round(point[0], 6)))
            cleaned_data['longitude'] = Decimal(str(round(point[1], 6)))

        if cleaned_data.get('latitude') is None or cleaned_data.get('longitude') is None:
            raise forms.ValidationError('Latitude and longitude are required')

        return cleaned_data

    def clean_radius_m(self):
        radius = self.cleaned_data.get('radius_m')
        if radius is not None and radius < 10:
            raise forms.ValidationError('Radius must be at least 10 metres')
        return radius
