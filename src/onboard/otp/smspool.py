"""SMSPool client (primary provider)."""

from __future__ import annotations

from onboard.otp.base import SmsApiProvider


class SmsPoolProvider(SmsApiProvider):
    name = "smspool"
    service_id = "962"
    countries = {
        "US": "1",
        "GB": "2",
        "UK": "2",
        "UA": "25",
        "ID": "2",
    }
