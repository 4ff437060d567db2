"""Validation forms for JSON request bodies."""

import re

from django import forms
from django.core.validators import RegexValidator

from canne.core.conf import get_setting
from canne.core.exceptions import InvalidRequest

US_PHONE_VALIDATOR = RegexValidator(
    r"^\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})$",
    "Please enter a valid phone number",
)


def validate_form(form: forms.Form) -> dict:
    """Return cleaned data or raise InvalidRequest carrying the field errors."""
    if form.is_valid():
        return form.cleaned_data

    errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
    first_field, first_errors = next(iter(errors.items()))
    message = first_errors[0] if first_field == "__all__" else f"{first_field}: {first_errors[0]}"
    raise InvalidRequest(message, errors=errors)


class DeliveryDetailsForm(forms.Form):
    """Customer contact and delivery address for a cart order."""

    name = forms.CharField(max_length=200)
    phone = forms.CharField(max_length=32)
    email = forms.EmailField(required=False)
    address = forms.CharField(max_length=255)
    apartment = forms.CharField(max_length=50, required=False)
    city = forms.CharField(max_length=100)
    zip_code = forms.CharField(max_length=10)
    time_preference = forms.CharField(max_length=100, required=False)
    special_instructions = forms.CharField(required=False)

    def clean_zip_code(self):
        zip_code = self.cleaned_data["zip_code"].strip()
        if not re.match(get_setting("DELIVERY_ZIP_PATTERN"), zip_code):
            raise forms.ValidationError("Only Washington DC ZIP codes (20000-20199) are allowed")
        return zip_code


class DriverApplicationForm(forms.Form):
    name = forms.CharField(min_length=2, max_length=200)
    phone = forms.CharField(max_length=32, validators=[US_PHONE_VALIDATOR])
    email = forms.EmailField(error_messages={"invalid": "Please enter a valid email address"})
    availability = forms.JSONField()
    vehicle_type = forms.CharField(max_length=50, required=False)
    cashapp_handle = forms.CharField(max_length=50, required=False)
    about = forms.CharField(
        max_length=500,
        required=False,
        error_messages={"max_length": "Description must be 500 characters or less"},
    )

    def clean_availability(self):
        availability = self.cleaned_data["availability"]
        if not isinstance(availability, list) or not all(isinstance(a, str) and a for a in availability):
            raise forms.ValidationError("Please select at least one availability option")
        if not availability:
            raise forms.ValidationError("Please select at least one availability option")
        return availability


class DriverForm(forms.Form):
    """Staff-created driver."""

    full_name = forms.CharField(max_length=200)
    phone = forms.CharField(max_length=32)
    email = forms.EmailField()
