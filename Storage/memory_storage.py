import datetime as dt
import threading
import uuid
from typing import Dict, List

from Models.models import (
    UserAlert,
    UserAlertCreate,
    UserLocation,
    UserLocationCreate,
)


class MemoryStorage:
    """
    Process-local store for saved user locations and alerts
    Unknown ids raise KeyError
    """

    def __init__(self):
        self._locations: Dict[str, UserLocation] = {}
        self._alerts: Dict[str, UserAlert] = {}
        self._lock = threading.Lock()

    # ==================== Locations ====================
    def get_user_locations(self, user_id: str) -> List[UserLocation]:
        with self._lock:
            return [loc for loc in self._locations.values() if loc.user_id == user_id]

    def get_user_location(self, location_id: str) -> UserLocation:
        with self._lock:
            return self._locations[location_id]

    def create_user_location(self, user_id: str, location: UserLocationCreate) -> UserLocation:
        new_location = UserLocation(
            **location.model_dump(),
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=dt.datetime.now(dt.timezone.utc),
        )
        with self._lock:
            self._locations[new_location.id] = new_location
        return new_location

    def delete_user_location(self, location_id: str) -> None:
        """Delete a location and every alert attached to it"""
        with self._lock:
            del self._locations[location_id]
            for alert_id in [a.id for a in self._alerts.values() if a.location_id == location_id]:
                del self._alerts[alert_id]

    # ==================== Alerts ====================
    def get_user_alerts(self, user_id: str) -> List[UserAlert]:
        with self._lock:
            return [alert for alert in self._alerts.values() if alert.user_id == user_id]

    def create_user_alert(self, user_id: str, alert: UserAlertCreate) -> UserAlert:
        with self._lock:
            if alert.location_id is not None and alert.location_id not in self._locations:
                raise KeyError(alert.location_id)
            new_alert = UserAlert(
                **alert.model_dump(),
                id=str(uuid.uuid4()),
                user_id=user_id,
                created_at=dt.datetime.now(dt.timezone.utc),
            )
            self._alerts[new_alert.id] = new_alert
        return new_alert

    def update_user_alert(self, alert_id: str, enabled: bool) -> UserAlert:
        with self._lock:
            alert = self._alerts[alert_id].model_copy(update={"enabled": enabled})
            self._alerts[alert_id] = alert
        return alert

    def delete_user_alert(self, alert_id: str) -> None:
        with self._lock:
            del self._alerts[alert_id]


storage = MemoryStorage()
