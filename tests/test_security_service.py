"""Unit tests for the security service alarm rules."""

import unittest
import shutil
import sqlite3
import tempfile
from contextlib import closing
from unittest.mock import Mock, call
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catpoint_security.errors import ImageServiceError
from catpoint_security.models.sensor import Sensor, SensorType
from catpoint_security.models.status import AlarmStatus, ArmingStatus
from catpoint_security.services.interfaces import (
    ImageServiceInterface, SecurityRepositoryInterface, StatusListener
)
from catpoint_security.services.security_repository import (
    InMemorySecurityRepository, SqliteSecurityRepository
)
from catpoint_security.services.security_service import SecurityService

ARMED_STATUSES = (ArmingStatus.ARMED_HOME, ArmingStatus.ARMED_AWAY)


class TestSecurityService(unittest.TestCase):
    """Test cases for SecurityService against mocked collaborators."""

    def setUp(self):
        """Set up test fixtures."""
        self.repository = Mock(spec=SecurityRepositoryInterface)
        self.repository.get_alarm_status.return_value = AlarmStatus.NO_ALARM
        self.repository.get_arming_status.return_value = ArmingStatus.DISARMED
        self.repository.get_sensors.return_value = set()

        self.image_service = Mock(spec=ImageServiceInterface)
        self.listener = Mock(spec=StatusListener)

        self.service = SecurityService(self.repository, self.image_service)
        self.service.add_status_listener(self.listener)

        self.sensor = Sensor("Front Door", SensorType.DOOR)
        self.image = object()

    def given_status(self, arming_status, alarm_status):
        self.repository.get_arming_status.return_value = arming_status
        self.repository.get_alarm_status.return_value = alarm_status

    # Sensor activation rules

    def test_armed_sensor_activated_sets_pending_alarm(self):
        """Activating a sensor while armed with no alarm goes to pending."""
        for arming_status in ARMED_STATUSES:
            with self.subTest(arming_status=arming_status):
                self.repository.reset_mock()
                self.given_status(arming_status, AlarmStatus.NO_ALARM)

                self.service.change_sensor_activation_status(Sensor("Door", SensorType.DOOR), True)

                self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.PENDING_ALARM)

    def test_armed_pending_sensor_activated_sets_alarm(self):
        """Activating a sensor while pending raises the alarm."""
        for arming_status in ARMED_STATUSES:
            with self.subTest(arming_status=arming_status):
                self.repository.reset_mock()
                self.given_status(arming_status, AlarmStatus.PENDING_ALARM)

                self.service.change_sensor_activation_status(Sensor("Door", SensorType.DOOR), True)

                self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.ALARM)

    def test_pending_last_sensor_deactivated_sets_no_alarm(self):
        """Deactivating the only active sensor while pending clears the alarm."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.PENDING_ALARM)
        self.sensor.active = True
        self.repository.get_sensors.return_value = {self.sensor}

        self.service.change_sensor_activation_status(self.sensor, False)

        self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.NO_ALARM)

    def test_pending_other_sensor_still_active_keeps_pending(self):
        """Deactivating one of several active sensors leaves the alarm alone."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.PENDING_ALARM)
        other = Sensor("Back Door", SensorType.DOOR, active=True)
        self.sensor.active = True
        self.repository.get_sensors.return_value = {self.sensor, other}

        self.service.change_sensor_activation_status(self.sensor, False)

        self.repository.set_alarm_status.assert_not_called()

    def test_alarm_latched_against_sensor_changes(self):
        """While the alarm sounds, sensor changes never change the alarm status."""
        self.given_status(ArmingStatus.ARMED_AWAY, AlarmStatus.ALARM)

        self.service.change_sensor_activation_status(self.sensor, True)
        self.service.change_sensor_activation_status(self.sensor, False)

        self.repository.set_alarm_status.assert_not_called()
        self.assertEqual(self.repository.update_sensor.call_count, 2)
        self.assertFalse(self.sensor.active)

    def test_pending_active_sensor_reactivated_sets_alarm(self):
        """Activating an already active sensor still escalates."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.PENDING_ALARM)
        self.sensor.active = True

        self.service.change_sensor_activation_status(self.sensor, True)

        self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.ALARM)

    def test_inactive_sensor_deactivated_again_no_effect(self):
        """Deactivating an inactive sensor does not run the deactivation rule."""
        for alarm_status in AlarmStatus:
            with self.subTest(alarm_status=alarm_status):
                self.repository.reset_mock()
                self.given_status(ArmingStatus.ARMED_HOME, alarm_status)
                sensor = Sensor("Window", SensorType.WINDOW)

                self.service.change_sensor_activation_status(sensor, False)

                self.repository.set_alarm_status.assert_not_called()
                self.repository.get_sensors.assert_not_called()

    def test_disarmed_sensor_activated_no_alarm(self):
        """Sensor activity while disarmed never changes the alarm status."""
        self.given_status(ArmingStatus.DISARMED, AlarmStatus.NO_ALARM)

        self.service.change_sensor_activation_status(self.sensor, True)

        self.repository.set_alarm_status.assert_not_called()
        self.assertTrue(self.sensor.active)

    def test_sensor_persisted_on_every_call(self):
        """Every activation call writes the sensor once, changed or not."""
        self.given_status(ArmingStatus.DISARMED, AlarmStatus.NO_ALARM)

        self.service.change_sensor_activation_status(self.sensor, False)
        self.service.change_sensor_activation_status(self.sensor, False)
        self.service.change_sensor_activation_status(self.sensor, True)

        self.assertEqual(self.repository.update_sensor.call_args_list, [call(self.sensor)] * 3)

    def test_none_sensor_is_ignored(self):
        """A missing sensor is a silent no-op."""
        self.service.change_sensor_activation_status(None, True)

        self.repository.update_sensor.assert_not_called()
        self.repository.get_alarm_status.assert_not_called()
        self.repository.set_alarm_status.assert_not_called()
        self.listener.notify.assert_not_called()

    # Cat detection rules

    def test_process_image_uses_fixed_threshold(self):
        """The image service is asked with a 50.0 confidence threshold."""
        self.image_service.image_contains_cat.return_value = False

        self.service.process_image(self.image)

        self.image_service.image_contains_cat.assert_called_once_with(self.image, 50.0)

    def test_armed_home_cat_detected_sets_alarm(self):
        """A cat while armed at home raises the alarm."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.NO_ALARM)
        self.image_service.image_contains_cat.return_value = True

        self.service.process_image(self.image)

        self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.ALARM)
        self.assertTrue(self.service.cat_detected)

    def test_armed_away_cat_detected_does_not_set_alarm(self):
        """Image processing only raises the alarm for ARMED_HOME."""
        self.given_status(ArmingStatus.ARMED_AWAY, AlarmStatus.NO_ALARM)
        self.image_service.image_contains_cat.return_value = True

        self.service.process_image(self.image)

        self.repository.set_alarm_status.assert_not_called()
        self.listener.cat_detected.assert_called_once_with(True)

    def test_no_cat_and_no_active_sensors_sets_no_alarm(self):
        """No cat with every sensor inactive clears the alarm while armed."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.ALARM)
        self.repository.get_sensors.return_value = {self.sensor}
        self.image_service.image_contains_cat.return_value = False

        self.service.process_image(self.image)

        self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.NO_ALARM)

    def test_no_cat_with_active_sensor_keeps_status(self):
        """No cat leaves the alarm alone while a sensor is active."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.PENDING_ALARM)
        self.sensor.active = True
        self.repository.get_sensors.return_value = {self.sensor}
        self.image_service.image_contains_cat.return_value = False

        self.service.process_image(self.image)

        self.repository.set_alarm_status.assert_not_called()

    def test_no_cat_while_disarmed_keeps_status(self):
        """No cat while disarmed writes nothing."""
        self.given_status(ArmingStatus.DISARMED, AlarmStatus.NO_ALARM)
        self.image_service.image_contains_cat.return_value = False

        self.service.process_image(self.image)

        self.repository.set_alarm_status.assert_not_called()
        self.listener.cat_detected.assert_called_once_with(False)

    def test_cat_listeners_notified_after_alarm_change(self):
        """Listeners hear about the cat after the alarm status was written."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.NO_ALARM)
        self.image_service.image_contains_cat.return_value = True
        events = []
        self.repository.set_alarm_status.side_effect = lambda s: events.append(('alarm', s))
        self.listener.cat_detected.side_effect = lambda c: events.append(('cat', c))

        self.service.process_image(self.image)

        self.assertEqual(events, [('alarm', AlarmStatus.ALARM), ('cat', True)])

    def test_disarmed_cat_detected_then_armed_sets_alarm(self):
        """A cat seen while disarmed raises the alarm once the system is armed."""
        for arming_status in ARMED_STATUSES:
            with self.subTest(arming_status=arming_status):
                self.repository.reset_mock()
                self.given_status(ArmingStatus.DISARMED, AlarmStatus.NO_ALARM)
                self.image_service.image_contains_cat.return_value = True

                self.service.process_image(self.image)
                self.repository.set_alarm_status.assert_not_called()

                self.service.set_arming_status(arming_status)
                self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.ALARM)

    def test_no_cat_then_armed_does_not_set_alarm(self):
        """Arming without a detected cat never raises the alarm."""
        self.image_service.image_contains_cat.return_value = False

        self.service.process_image(self.image)
        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        self.assertNotIn(call(AlarmStatus.ALARM), self.repository.set_alarm_status.call_args_list)
        self.assertFalse(self.service.cat_detected)

    def test_image_service_error_propagates(self):
        """Detector failures reach the caller and leave state untouched."""
        self.image_service.image_contains_cat.side_effect = ImageServiceError("camera offline")

        with self.assertRaises(ImageServiceError):
            self.service.process_image(self.image)

        self.assertFalse(self.service.cat_detected)
        self.listener.cat_detected.assert_not_called()

    # Arming rules

    def test_disarm_sets_no_alarm_from_any_state(self):
        """Disarming always clears the alarm."""
        for alarm_status in AlarmStatus:
            with self.subTest(alarm_status=alarm_status):
                self.repository.reset_mock()
                self.given_status(ArmingStatus.ARMED_AWAY, alarm_status)

                self.service.set_arming_status(ArmingStatus.DISARMED)

                self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.NO_ALARM)
                self.repository.set_arming_status.assert_called_once_with(ArmingStatus.DISARMED)

    def test_arming_resets_all_sensors(self):
        """Arming deactivates and persists every sensor, then notifies listeners."""
        for arming_status in ARMED_STATUSES:
            with self.subTest(arming_status=arming_status):
                self.repository.reset_mock()
                self.listener.reset_mock()
                sensors = {
                    Sensor("Front Door", SensorType.DOOR, active=True),
                    Sensor("Hall", SensorType.MOTION, active=True),
                    Sensor("Kitchen", SensorType.WINDOW),
                }
                self.repository.get_sensors.return_value = sensors

                self.service.set_arming_status(arming_status)

                self.assertTrue(all(not s.active for s in sensors))
                self.assertEqual(self.repository.update_sensor.call_count, 3)
                self.repository.set_arming_status.assert_called_once_with(arming_status)
                self.listener.sensor_status_changed.assert_called_once_with()

    def test_rearming_same_status_resets_sensors_again(self):
        """Re-arming to the current status still rewrites every sensor."""
        self.given_status(ArmingStatus.ARMED_HOME, AlarmStatus.NO_ALARM)
        self.sensor.active = True
        self.repository.get_sensors.return_value = {self.sensor}

        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        self.repository.update_sensor.assert_called_once_with(self.sensor)
        self.assertFalse(self.sensor.active)

    def test_disarm_leaves_sensors_alone_but_notifies(self):
        """Disarming does not touch sensors; listeners still hear about it."""
        self.sensor.active = True
        self.repository.get_sensors.return_value = {self.sensor}

        self.service.set_arming_status(ArmingStatus.DISARMED)

        self.repository.update_sensor.assert_not_called()
        self.assertTrue(self.sensor.active)
        self.listener.sensor_status_changed.assert_called_once_with()

    # Listener registry

    def test_set_alarm_status_notifies_without_dedup(self):
        """Every alarm status write reaches listeners, even when unchanged."""
        self.service.set_alarm_status(AlarmStatus.PENDING_ALARM)
        self.service.set_alarm_status(AlarmStatus.PENDING_ALARM)

        self.assertEqual(self.listener.notify.call_args_list,
                         [call(AlarmStatus.PENDING_ALARM)] * 2)
        self.assertEqual(self.repository.set_alarm_status.call_count, 2)

    def test_removed_listener_no_longer_notified(self):
        """A removed listener receives none of the three notifications."""
        self.service.remove_status_listener(self.listener)
        self.image_service.image_contains_cat.return_value = True

        self.service.set_alarm_status(AlarmStatus.ALARM)
        self.service.process_image(self.image)
        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        self.listener.notify.assert_not_called()
        self.listener.cat_detected.assert_not_called()
        self.listener.sensor_status_changed.assert_not_called()

    def test_listener_registration_is_idempotent(self):
        """Adding a listener twice notifies it once; removing twice is harmless."""
        self.service.add_status_listener(self.listener)

        self.service.set_alarm_status(AlarmStatus.ALARM)
        self.listener.notify.assert_called_once_with(AlarmStatus.ALARM)

        self.service.remove_status_listener(self.listener)
        self.service.remove_status_listener(self.listener)

    def test_registration_does_not_notify(self):
        """Registering a listener triggers no notification."""
        other = Mock(spec=StatusListener)
        self.service.add_status_listener(other)
        self.service.remove_status_listener(other)

        other.notify.assert_not_called()
        other.cat_detected.assert_not_called()
        other.sensor_status_changed.assert_not_called()

    def test_all_listeners_notified(self):
        """Every registered listener gets the notification."""
        other = Mock(spec=StatusListener)
        self.service.add_status_listener(other)

        self.service.set_alarm_status(AlarmStatus.PENDING_ALARM)

        self.listener.notify.assert_called_once_with(AlarmStatus.PENDING_ALARM)
        other.notify.assert_called_once_with(AlarmStatus.PENDING_ALARM)

    def test_listener_error_propagates(self):
        """A failing listener surfaces to the caller after the status was persisted."""
        self.listener.notify.side_effect = RuntimeError("listener broke")

        with self.assertRaises(RuntimeError):
            self.service.set_alarm_status(AlarmStatus.ALARM)

        self.repository.set_alarm_status.assert_called_once_with(AlarmStatus.ALARM)

    def test_listener_error_stops_remaining_notifications(self):
        """The first failing listener aborts the rest of the fan-out."""
        other = Mock(spec=StatusListener)
        self.service.add_status_listener(other)
        self.listener.notify.side_effect = RuntimeError("listener broke")
        other.notify.side_effect = RuntimeError("other listener broke")

        with self.assertRaises(RuntimeError):
            self.service.set_alarm_status(AlarmStatus.ALARM)

        self.assertEqual(self.listener.notify.call_count + other.notify.call_count, 1)

    # Queries

    def test_queries_delegate_to_repository(self):
        """Read and sensor management calls go straight to the repository."""
        self.given_status(ArmingStatus.ARMED_AWAY, AlarmStatus.ALARM)
        self.repository.get_sensors.return_value = {self.sensor}

        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)
        self.assertEqual(self.service.get_arming_status(), ArmingStatus.ARMED_AWAY)

        self.assertEqual(self.service.get_sensors(), {self.sensor})

        self.service.add_sensor(self.sensor)
        self.repository.add_sensor.assert_called_once_with(self.sensor)

        self.service.remove_sensor(self.sensor)
        self.repository.remove_sensor.assert_called_once_with(self.sensor)

    def test_cat_detected_starts_false(self):
        """The detection flag starts cleared."""
        service = SecurityService(self.repository, self.image_service)
        self.assertFalse(service.cat_detected)


class TestSecurityServiceWithRepository(unittest.TestCase):
    """End-to-end alarm scenarios using the in-memory repository."""

    def setUp(self):
        """Set up test fixtures."""
        self.repository = InMemorySecurityRepository()
        self.image_service = Mock(spec=ImageServiceInterface)
        self.image_service.image_contains_cat.return_value = False
        self.service = SecurityService(self.repository, self.image_service)

        self.door = Sensor("Front Door", SensorType.DOOR)
        self.window = Sensor("Kitchen Window", SensorType.WINDOW)
        self.motion = Sensor("Hallway", SensorType.MOTION)
        for sensor in (self.door, self.window, self.motion):
            self.service.add_sensor(sensor)

    def test_escalation_ladder(self):
        """Two activations while armed go NO_ALARM -> PENDING_ALARM -> ALARM."""
        self.service.set_arming_status(ArmingStatus.ARMED_AWAY)

        self.service.change_sensor_activation_status(self.door, True)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.PENDING_ALARM)

        self.service.change_sensor_activation_status(self.window, True)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)

    def test_pending_cleared_when_last_sensor_closes(self):
        """Pending alarm clears only once every sensor is inactive."""
        self.service.set_arming_status(ArmingStatus.ARMED_HOME)
        self.service.change_sensor_activation_status(self.door, True)
        self.repository.set_alarm_status(AlarmStatus.PENDING_ALARM)
        self.motion.active = True
        self.repository.update_sensor(self.motion)

        self.service.change_sensor_activation_status(self.door, False)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.PENDING_ALARM)

        self.service.change_sensor_activation_status(self.motion, False)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

    def test_alarm_latched_until_disarmed(self):
        """Once sounding, only disarming clears the alarm among sensor and arming changes."""
        self.service.set_arming_status(ArmingStatus.ARMED_HOME)
        self.service.change_sensor_activation_status(self.door, True)
        self.service.change_sensor_activation_status(self.window, True)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)

        for sensor in (self.door, self.window, self.motion):
            for active in (False, True, False):
                self.service.change_sensor_activation_status(sensor, active)
                self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)

        self.service.set_arming_status(ArmingStatus.DISARMED)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

    def test_arming_deactivates_stored_sensors(self):
        """Sensors left active while disarmed are reset by arming."""
        self.service.change_sensor_activation_status(self.door, True)
        self.service.change_sensor_activation_status(self.motion, True)
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

        self.service.set_arming_status(ArmingStatus.ARMED_AWAY)

        self.assertTrue(all(not s.active for s in self.service.get_sensors()))
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

    def test_cat_clears_after_leaving(self):
        """A cat raises the alarm at home; an empty frame with quiet sensors clears it."""
        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        self.image_service.image_contains_cat.return_value = True
        self.service.process_image("frame-1")
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)

        self.image_service.image_contains_cat.return_value = False
        self.service.process_image("frame-2")
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

    def test_cat_seen_while_disarmed_alarms_on_arming_away(self):
        """The detection flag survives the arm transition."""
        self.image_service.image_contains_cat.return_value = True
        self.service.process_image("frame")
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)

        self.service.set_arming_status(ArmingStatus.ARMED_AWAY)

        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.ALARM)
        self.assertEqual(self.service.get_arming_status(), ArmingStatus.ARMED_AWAY)

    def test_arming_resets_duplicate_sensors(self):
        """Equal sensors added twice and both activated are all inactive after arming."""
        first = Sensor("Door", SensorType.DOOR)
        second = Sensor("Door", SensorType.DOOR)
        self.service.add_sensor(first)
        self.service.add_sensor(second)
        self.service.change_sensor_activation_status(first, True)
        self.service.change_sensor_activation_status(second, True)

        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        self.assertEqual([s.active for s in self.repository._sensors.values()],
                         [False] * len(self.repository._sensors))
        self.assertEqual(self.service.get_alarm_status(), AlarmStatus.NO_ALARM)


class TestSecurityServiceWithSqlite(unittest.TestCase):
    """Alarm scenarios against the SQLite repository."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.database_path = os.path.join(self.test_dir, "security.db")
        self.service = SecurityService(SqliteSecurityRepository(self.database_path),
                                       Mock(spec=ImageServiceInterface))

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_arming_resets_duplicate_sensors(self):
        first = Sensor("Door", SensorType.DOOR)
        second = Sensor("Door", SensorType.DOOR)
        self.service.add_sensor(first)
        self.service.add_sensor(second)
        self.service.change_sensor_activation_status(first, True)
        self.service.change_sensor_activation_status(second, True)

        self.service.set_arming_status(ArmingStatus.ARMED_HOME)

        with closing(sqlite3.connect(self.database_path)) as conn:
            stored = [row[0] for row in conn.execute("SELECT active FROM sensors")]

        self.assertTrue(stored)
        self.assertEqual(stored, [0] * len(stored))


if __name__ == '__main__':
    unittest.main()
