# config.py

import os
import shutil
import logging
import tomli, tomli_w
from pathlib import Path
from datetime import time
from importlib.resources import files
from platformdirs import user_config_path, user_documents_path
from typing import Dict, Any, Optional

from trainsched.validate import Validator, ValidationResult
from trainsched.models import ScheduleInput, DEFAULT_START_TIME

CONFIG_DIR_ENV = "TRAINSCHED_CONFIG_DIR"


class ConfigManager:
    """Manages the user config file holding input defaults and export settings"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.logger = logging.getLogger("trainsched.config")
        self.logger.debug("🔧 Initializing ConfigManager")

        self.validator = Validator()

        # Get directories and paths
        if config_dir is None and os.environ.get(CONFIG_DIR_ENV):
            config_dir = Path(os.environ[CONFIG_DIR_ENV])
        if config_dir is None:
            config_dir = user_config_path(appname="trainsched", appauthor=False, ensure_exists=True)
        else:
            config_dir = Path(config_dir)
            config_dir.mkdir(parents=True, exist_ok=True)

        self.config_dir = config_dir
        self.config_file_path = self.config_dir / "config.toml"
        self.data_dir = files("trainsched.data")

        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Loads the global configuration file"""

        self.logger.debug("🔁 Loading configuration")

        # Create a default config file if it doesn't exist
        if not self.config_file_path.exists():
            self.logger.debug("⚠️ Config file not found, creating default")
            self._create_default_config()

        # Check if the config file is empty
        elif self.config_file_path.stat().st_size == 0:
            self.logger.debug("⚠️ Config file is empty, creating default")
            self._create_default_config()

        try:
            with open(self.config_file_path, "rb") as f:
                config = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            self.logger.error(f"💀 Error loading configuration: {str(e)}")
            raise ValueError(f"Could not read config file {self.config_file_path}: {e}")

        # Cache the config for later use
        self.config = config
        return config

    def validate_config(self) -> ValidationResult:
        """Validates the current configuration and returns validation results"""
        return self.validator.validate_config(self.config)

    def _create_default_config(self) -> None:
        """Creates a default configuration file"""

        default_config_path = self.data_dir / "config.toml"

        self.logger.debug("🔁 Copying default config")

        with default_config_path.open("rb") as src, open(self.config_file_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
        self.logger.debug("✅ Default configuration created")

    def get_defaults(self) -> ScheduleInput:
        """Builds an input template (without a start date) from the [defaults] section"""

        defaults = self.config.get("defaults", {})
        base = ScheduleInput(start_date=None)

        start_time = DEFAULT_START_TIME
        if "start_time" in defaults:
            try:
                start_time = time.fromisoformat(str(defaults["start_time"]))
            except ValueError:
                self.logger.warning(f"⚠️ Ignoring invalid default start_time: {defaults['start_time']!r}")

        # Hand-edited weekdays are only used when every entry is a 0..6 index
        weekdays = base.weekdays
        if "weekdays" in defaults:
            check = self.validator.validate_config({"defaults": {"weekdays": defaults["weekdays"]}})
            if check.failed:
                self.logger.warning(f"⚠️ Ignoring invalid default weekdays: {defaults['weekdays']!r}")
            else:
                weekdays = frozenset(defaults["weekdays"])

        return ScheduleInput(
            start_date=None,
            hours_per_day=float(defaults.get("hours_per_day", base.hours_per_day)),
            total_hours=float(defaults.get("total_hours", base.total_hours)),
            weekdays=weekdays,
            start_time=start_time,
        )

    def set_default(self, key: str, value: Any) -> bool:
        """Sets a value in the [defaults] section

        Args:
            key (str): One of start_time, hours_per_day, total_hours, weekdays
            value (Any): The already-parsed value to store
        """

        self.logger.debug(f"🔁 Setting default {key}")

        self.load_config()

        if isinstance(value, time):
            value = value.strftime("%H:%M")
        elif isinstance(value, (set, frozenset)):
            value = sorted(value)

        config = dict(self.config)
        config["defaults"] = {**config.get("defaults", {}), key: value}

        return self._save_config(config)

    def get_export_dir(self) -> Path:
        """Gets the directory exports are written to"""

        directory = self.config.get("export", {}).get("directory")
        if directory:
            path = Path(directory).expanduser()
            # Relative paths are taken relative to the config directory
            return path if path.is_absolute() else self.config_dir / path
        return user_documents_path()

    def set_export_dir(self, directory: Path) -> bool:
        """Sets the directory exports are written to"""

        self.logger.debug(f"🔁 Setting export directory to {directory}")

        self.load_config()

        config = dict(self.config)
        config["export"] = {**config.get("export", {}), "directory": str(directory)}

        return self._save_config(config)

    def _save_config(self, config: dict) -> bool:
        """Saves the configuration to the global config file"""

        self.logger.debug("🔁 Saving configuration")

        # Validate the config before saving
        validation = self.validator.validate_config(config)
        if validation.failed:
            self.logger.error("💀 Configuration validation failed")
            for key, result in validation.errors.items():
                self.logger.error(f"    ❗ {key.upper()}: {result}")
            return False

        for key, result in validation.warnings.items():
            self.logger.warning(f"    ⚠️ {key.upper()}: {result}")

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_file_path, "wb") as f:
                tomli_w.dump(config, f)

            # Verify the file can be read back
            with open(self.config_file_path, "rb") as f:
                tomli.load(f)

        except (OSError, tomli.TOMLDecodeError) as e:
            self.logger.error(f"💀 Error saving configuration: {str(e)}")
            return False

        self.config = config
        self.logger.debug("✅ Configuration saved")
        return True
