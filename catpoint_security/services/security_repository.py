"""Security repository implementations: in-memory and SQLite."""

import os
import sqlite3
from contextlib import closing
from typing import Any, Dict, List, Set, Tuple

from ..config.defaults import SYSTEM_CONSTANTS
from ..errors import RepositoryError
from ..logging_config import get_logger
from ..models.sensor import Sensor
from ..models.status import AlarmStatus, ArmingStatus
from ..utils import ensure_directory_exists
from .error_decorators import retry_on_error
from .interfaces import SecurityRepositoryInterface

logger = get_logger("security_repository")

ALARM_STATUS_KEY = "alarm_status"
ARMING_STATUS_KEY = "arming_status"


class InMemorySecurityRepository(SecurityRepositoryInterface):
    """Keeps sensors and statuses in process memory.

    Sensors are stored by ``sensor_id`` so that a sensor mutated in place
    can still be found and replaced.
    """

    def __init__(self,
                 initial_alarm_status: AlarmStatus = AlarmStatus.NO_ALARM,
                 initial_arming_status: ArmingStatus = ArmingStatus.DISARMED):
        self._sensors: Dict[str, Sensor] = {}
        self._alarm_status = initial_alarm_status
        self._arming_status = initial_arming_status

    def get_sensors(self) -> Set[Sensor]:
        return set(self._sensors.values())

    def add_sensor(self, sensor: Sensor) -> None:
        self._store(sensor)
        logger.debug(f"Added sensor {sensor.name} ({sensor.sensor_type.name})")

    def remove_sensor(self, sensor: Sensor) -> None:
        self._sensors.pop(sensor.sensor_id, None)
        logger.debug(f"Removed sensor {sensor.name}")

    def update_sensor(self, sensor: Sensor) -> None:
        self._store(sensor)

    def _store(self, sensor: Sensor) -> None:
        # Equal sensors collapse into a single record, as they would in a set
        for sensor_id, stored in list(self._sensors.items()):
            if sensor_id != sensor.sensor_id and stored == sensor:
                del self._sensors[sensor_id]
        self._sensors[sensor.sensor_id] = sensor

    def get_alarm_status(self) -> AlarmStatus:
        return self._alarm_status

    def set_alarm_status(self, alarm_status: AlarmStatus) -> None:
        self._alarm_status = alarm_status

    def get_arming_status(self) -> ArmingStatus:
        return self._arming_status

    def set_arming_status(self, arming_status: ArmingStatus) -> None:
        self._arming_status = arming_status


_retry_locked = retry_on_error(
    max_attempts=SYSTEM_CONSTANTS["REPOSITORY_RETRY_ATTEMPTS"],
    delay=SYSTEM_CONSTANTS["REPOSITORY_RETRY_DELAY_SECONDS"],
    backoff_factor=2.0,
    exceptions=[sqlite3.OperationalError]
)


class SqliteSecurityRepository(SecurityRepositoryInterface):
    """Persists sensors and statuses in a SQLite database.

    Every call opens its own connection, so state survives process restarts
    and several short-lived processes can share one database file. Locked
    database errors are retried; anything still failing is raised as
    ``RepositoryError``.
    """

    def __init__(self, database_path: str = "data/security.db"):
        self.database_path = database_path

        directory = os.path.dirname(database_path)
        if directory:
            ensure_directory_exists(directory)

        self._initialize_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.database_path)

    def _initialize_database(self) -> None:
        """Create tables and seed default statuses."""
        try:
            with closing(self._connect()) as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS sensors (
                        sensor_id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        sensor_type TEXT NOT NULL,
                        active INTEGER NOT NULL DEFAULT 0
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS settings (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)

                cursor.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
                    (ALARM_STATUS_KEY, AlarmStatus.NO_ALARM.name)
                )
                cursor.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
                    (ARMING_STATUS_KEY, ArmingStatus.DISARMED.name)
                )
                conn.commit()
                logger.debug(f"Database initialized: {self.database_path}")

        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise RepositoryError(f"Cannot initialize {self.database_path}: {e}") from e

    def get_sensors(self) -> Set[Sensor]:
        rows = self._execute_read("SELECT sensor_id, name, sensor_type, active FROM sensors")
        return {Sensor.from_dict(dict(row)) for row in rows}

    def add_sensor(self, sensor: Sensor) -> None:
        self.update_sensor(sensor)
        logger.debug(f"Added sensor {sensor.name} ({sensor.sensor_type.name})")

    def remove_sensor(self, sensor: Sensor) -> None:
        self._execute_write("DELETE FROM sensors WHERE sensor_id = ?", (sensor.sensor_id,))
        logger.debug(f"Removed sensor {sensor.name}")

    def update_sensor(self, sensor: Sensor) -> None:
        record = sensor.to_dict()
        # Equal sensors collapse into a single row, as they would in a set
        self._execute_writes([
            ("DELETE FROM sensors WHERE name = :name AND sensor_type = :sensor_type "
             "AND active = :active AND sensor_id != :sensor_id", record),
            ("INSERT OR REPLACE INTO sensors (sensor_id, name, sensor_type, active) "
             "VALUES (:sensor_id, :name, :sensor_type, :active)", record),
        ])

    def get_alarm_status(self) -> AlarmStatus:
        return AlarmStatus[self._get_setting(ALARM_STATUS_KEY)]

    def set_alarm_status(self, alarm_status: AlarmStatus) -> None:
        self._set_setting(ALARM_STATUS_KEY, alarm_status.name)

    def get_arming_status(self) -> ArmingStatus:
        return ArmingStatus[self._get_setting(ARMING_STATUS_KEY)]

    def set_arming_status(self, arming_status: ArmingStatus) -> None:
        self._set_setting(ARMING_STATUS_KEY, arming_status.name)

    def _get_setting(self, key: str) -> str:
        rows = self._execute_read("SELECT value FROM settings WHERE key = ?", (key,))
        if not rows:
            raise RepositoryError(f"Setting {key} missing from {self.database_path}")
        return rows[0][0]

    def _set_setting(self, key: str, value: str) -> None:
        self._execute_write(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value)
        )

    def _execute_read(self, query: str, params: tuple = ()) -> list:
        try:
            return self._read_with_retry(query, params)
        except sqlite3.Error as e:
            logger.error(f"Read failed: {e}")
            raise RepositoryError(str(e)) from e

    def _execute_write(self, query: str, params: tuple = ()) -> None:
        self._execute_writes([(query, params)])

    def _execute_writes(self, statements: List[Tuple[str, Any]]) -> None:
        """Run several statements in one transaction."""
        try:
            self._write_with_retry(statements)
        except sqlite3.Error as e:
            logger.error(f"Write failed: {e}")
            raise RepositoryError(str(e)) from e

    @_retry_locked
    def _read_with_retry(self, query: str, params: tuple) -> list:
        with closing(self._connect()) as conn:
            conn.row_factory = sqlite3.Row
            return conn.execute(query, params).fetchall()

    @_retry_locked
    def _write_with_retry(self, statements: List[Tuple[str, Any]]) -> None:
        with closing(self._connect()) as conn:
            for query, params in statements:
                conn.execute(query, params)
            conn.commit()
