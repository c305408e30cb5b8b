"""SMS-Man client (fallback provider)."""

from __future__ import annotations

from typing import Any

from onboard.otp.base import SmsApiProvider

# 1 = pending with number assigned, 3 = SMS received
_ACCEPTED_STATUSES = {1, 3}


class SmsManProvider(SmsApiProvider):
    name = "sms-man"
    service_id = "962"
    countries = {
        "US": "1",
        "CA": "2",
        "AU": "3",
        "DE": "4",
        "FR": "5",
        "IT": "6",
        "ES": "7",
        "NL": "8",
        "BE": "9",
        "AT": "10",
        "CH": "11",
    }

    def _check_accepted(self, data: dict[str, Any]) -> bool:
        try:
            return int(data.get("status")) in _ACCEPTED_STATUSES
        except (TypeError, ValueError):
            return False
