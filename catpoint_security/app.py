"""Wiring for the security service and the console front end."""

import argparse
import shlex
import sys
from typing import Iterable, List, Optional

from .application.panels import SensorPanel, StatusDisplay
from .config_manager import ConfigManager
from .errors import CatpointError, ConfigError
from .logging_config import get_logger, setup_logging
from .models.config import SystemConfig
from .models.sensor import SensorType
from .models.status import ArmingStatus
from .services.image_service import FakeImageService, OpenCVImageService
from .services.interfaces import ImageServiceInterface, SecurityRepositoryInterface
from .services.security_repository import InMemorySecurityRepository, SqliteSecurityRepository
from .services.security_service import SecurityService

logger = get_logger("app")

ARMING_CHOICES = {
    "home": ArmingStatus.ARMED_HOME,
    "away": ArmingStatus.ARMED_AWAY,
}


def create_repository(config: SystemConfig) -> SecurityRepositoryInterface:
    if config.repository_backend == "sqlite":
        return SqliteSecurityRepository(config.database_file)
    if config.repository_backend == "memory":
        return InMemorySecurityRepository()
    raise ConfigError(f"Unknown repository backend: {config.repository_backend}")


def create_image_service(config: SystemConfig) -> ImageServiceInterface:
    if config.image_service == "opencv":
        return OpenCVImageService(
            cascade_path=config.cascade_path,
            scale_factor=config.cascade_scale_factor,
            min_neighbors=config.cascade_min_neighbors
        )
    if config.image_service == "fake":
        return FakeImageService()
    raise ConfigError(f"Unknown image service: {config.image_service}")


def create_security_service(config: SystemConfig) -> SecurityService:
    """Build a security service with the collaborators named in the config."""
    return SecurityService(create_repository(config), create_image_service(config))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catpoint",
        description="Home security alarm controller"
    )
    parser.add_argument("--config", default=None, help="Path to the JSON config file")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    commands = add_commands(parser)
    commands.add_parser("shell", help="Read commands from stdin in one long-running session")

    return parser


def build_session_parser() -> argparse.ArgumentParser:
    """Parser for one line typed into a shell session."""
    parser = argparse.ArgumentParser(prog="", add_help=False)
    add_commands(parser)
    return parser


def add_commands(parser: argparse.ArgumentParser) -> argparse._SubParsersAction:
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show alarm, arming and sensor status")

    arm = commands.add_parser("arm", help="Arm the system")
    arm.add_argument("mode", choices=sorted(ARMING_CHOICES))

    commands.add_parser("disarm", help="Disarm the system")

    add_sensor = commands.add_parser("add-sensor", help="Add a sensor")
    add_sensor.add_argument("name")
    add_sensor.add_argument("sensor_type", type=str.upper, choices=[t.name for t in SensorType])

    remove_sensor = commands.add_parser("remove-sensor", help="Remove a sensor")
    remove_sensor.add_argument("name")

    sensor = commands.add_parser("sensor", help="Activate or deactivate a sensor")
    sensor.add_argument("name")
    sensor.add_argument("state", choices=["on", "off"])

    scan = commands.add_parser("scan", help="Check a camera image for cats")
    scan.add_argument("image")

    return commands


def run_command(args: argparse.Namespace, security_service: SecurityService,
                sensor_panel: SensorPanel) -> None:
    """Apply one parsed command to the security service."""
    if args.command == "arm":
        security_service.set_arming_status(ARMING_CHOICES[args.mode])
    elif args.command == "disarm":
        security_service.set_arming_status(ArmingStatus.DISARMED)
    elif args.command == "add-sensor":
        if not sensor_panel.add_sensor(args.name, SensorType[args.sensor_type]):
            print(f"To add more than {sensor_panel.max_sensors} sensors, "
                  f"please subscribe to our Premium Membership!")
    elif args.command in ("remove-sensor", "sensor"):
        sensor = sensor_panel.find_sensor(args.name)
        if sensor is None:
            raise CatpointError(f"No sensor named {args.name}")
        if args.command == "remove-sensor":
            sensor_panel.remove_sensor(sensor)
        else:
            sensor_panel.set_sensor_activity(sensor, args.state == "on")
    elif args.command == "scan":
        security_service.process_image(args.image)


def print_state(status_display: StatusDisplay, sensor_panel: SensorPanel) -> None:
    print(status_display.render())
    for row in sensor_panel.rows:
        print(f"  {row}")


def run_session(lines: Iterable[str], security_service: SecurityService,
                sensor_panel: SensorPanel, status_display: StatusDisplay) -> None:
    """Run commands line by line against one service until ``quit`` or end of input.

    Cat detection lives in the service instance, so a scan followed by
    arming only raises the alarm within a single session.
    """
    parser = build_session_parser()
    logger.info("Session started")

    for line in lines:
        try:
            words = shlex.split(line)
        except ValueError as e:
            print(f"Error: {e}")
            continue

        if not words:
            continue
        if words[0] in ("quit", "exit"):
            break

        try:
            args = parser.parse_args(words)
        except SystemExit:
            # argparse has already printed the usage error
            continue

        try:
            run_command(args, security_service, sensor_panel)
        except CatpointError as e:
            logger.error(f"{args.command} failed: {e}")
            print(f"Error: {e}")
            continue

        print_state(status_display, sensor_panel)

    logger.info("Session ended")


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point; returns a process exit code."""
    args = build_parser().parse_args(argv)

    config_manager = ConfigManager(args.config)
    if args.log_level:
        config_manager.get_config().log_level = args.log_level
    config = config_manager.get_config()

    if not config_manager.validate_config():
        logger.error(f"Invalid configuration in {config_manager.config_path}")
        return 1

    logging_manager = setup_logging(config.log_level, config.log_dir)
    try:
        security_service = create_security_service(config)
        sensor_panel = SensorPanel(security_service, config.max_sensors)
        status_display = StatusDisplay(security_service)

        if args.command == "shell":
            print_state(status_display, sensor_panel)
            try:
                run_session(sys.stdin, security_service, sensor_panel, status_display)
            except KeyboardInterrupt:
                logger.info("Received shutdown signal")
            return 0

        run_command(args, security_service, sensor_panel)
        print_state(status_display, sensor_panel)
        return 0

    except CatpointError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        logging_manager.close()


if __name__ == "__main__":
    sys.exit(main())
