"""
Forms for the admin JSON endpoints (pickup windows and blocked slots).
"""

from django import forms

from storeman.models.pickup import BlockedSlot, PickupWindow

TIME_FORMATS = ['%H:%M', '%H:%M:%S']


class PickupWindowForm(forms.ModelForm):
    start_time = forms.TimeField(input_formats=TIME_FORMATS)
    end_time = forms.TimeField(input_formats=TIME_FORMATS)

    class Meta:
        model = PickupWindow
        fields = ['day_of_week', 'start_time', 'end_time', 'active', 'capacity']


class BlockedSlotForm(forms.ModelForm):
    start_time = forms.TimeField(input_formats=TIME_FORMATS)
    end_time = forms.TimeField(input_formats=TIME_FORMATS)

    class Meta:
        model = BlockedSlot
        fields = ['date', 'start_time', 'end_time', 'reason']
