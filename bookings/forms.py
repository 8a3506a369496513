from __future__ import annotations

from decimal import Decimal

from django import forms

from .models import BookingStatus, room_type_validator
from .services import BookingEditInput, BookingInput, RoomInput


class _StayDatesMixin:
    def clean(self):
        cleaned = super().clean()
        check_in = cleaned.get("check_in")
        check_out = cleaned.get("check_out")
        if check_in and check_out and check_out <= check_in:
            self.add_error("check_out", "Check-out date must be after the check-in date.")
        return cleaned


class BookingForm(_StayDatesMixin, forms.Form):
    room_id = forms.IntegerField(min_value=1)
    check_in = forms.DateField()
    check_out = forms.DateField()
    service_type = forms.CharField(max_length=100, required=False)

    def to_input(self) -> BookingInput:
        return BookingInput(
            room_id=self.cleaned_data["room_id"],
            check_in=self.cleaned_data["check_in"],
            check_out=self.cleaned_data["check_out"],
            service_type=self.cleaned_data.get("service_type") or "",
        )


class AdminBookingForm(BookingForm):
    user_id = forms.IntegerField(min_value=1)
    status = forms.ChoiceField(choices=BookingStatus.choices, required=False)


class BookingEditForm(_StayDatesMixin, forms.Form):
    """Fields a booking edit may change. Owner and room are never read from input."""

    check_in = forms.DateField()
    check_out = forms.DateField()
    service_type = forms.CharField(max_length=100, required=False)
    status = forms.ChoiceField(choices=BookingStatus.choices, required=False)
    version = forms.IntegerField(min_value=1, required=False)

    def to_input(self) -> BookingEditInput:
        return BookingEditInput(
            check_in=self.cleaned_data["check_in"],
            check_out=self.cleaned_data["check_out"],
            service_type=self.cleaned_data.get("service_type") or "",
            status=self.cleaned_data.get("status") or None,
            expected_version=self.cleaned_data.get("version"),
        )


class BookingStatusForm(forms.Form):
    status = forms.ChoiceField(choices=BookingStatus.choices)
    version = forms.IntegerField(min_value=1, required=False)


class RoomForm(forms.Form):
    name = forms.CharField(min_length=2, max_length=100)
    description = forms.CharField(max_length=500)
    price_per_night = forms.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("1"),
        max_value=Decimal("100000"),
    )
    max_guests = forms.IntegerField(min_value=1, max_value=10)
    room_type = forms.CharField(max_length=50, required=False, validators=[room_type_validator])
    is_available = forms.NullBooleanField(required=False)
    version = forms.IntegerField(min_value=1, required=False)

    def to_input(self) -> RoomInput:
        return RoomInput(
            name=self.cleaned_data["name"],
            description=self.cleaned_data["description"],
            price_per_night=self.cleaned_data["price_per_night"],
            max_guests=self.cleaned_data["max_guests"],
            room_type=self.cleaned_data.get("room_type") or "",
            is_available=self.cleaned_data.get("is_available"),
            expected_version=self.cleaned_data.get("version"),
        )
