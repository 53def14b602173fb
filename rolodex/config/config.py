"""
Config classes that read the process environment, optionally seeded from a .env file.
"""
import os
import json
from abc import abstractmethod
import logging
from dotenv import load_dotenv

from rolodex.errors import ValidationError

logger = logging.getLogger(__name__)


class BaseConfig():
    """
    Config class that uses the environment and/or a .env file.
    """
    def __init__(self):
        load_dotenv()
        # Get all environment variables and store them in a dictionary
        self.env_vars = {key: os.getenv(key) for key in os.environ}

    def get_env_vars(self) -> dict:
        """
        Return the dictionary containing all environment variables
        """
        return self.env_vars

    def get_env_var(self, var_name: str):
        """
        Retrieve the value of the specified environment variable
        Args:
            var_name (str) : Name of the env var to fetch
        """
        if var_name in self.env_vars.keys():
            return self.env_vars[var_name]
        else:
            logger.warning("Variable %s not found.", var_name)
            return None

    def convert_var_into_list(self, var_name: str) -> bool:
        """
        Converts a comma-delimited var into a list
        """
        if var_name in self.env_vars.keys():
            self.env_vars[var_name] = [env_var.strip() for env_var in self.env_vars[var_name].split(",")]
            return True
        logger.warning("Warning: var %s not found.", var_name)
        return False

    def convert_var_from_json_string(self, var_name: str) -> bool:
        """
        Converts a json string into a pythonic type
        """
        if var_name in self.env_vars.keys():
            try:
                self.env_vars[var_name] = json.loads(self.env_vars[var_name])
                return True
            except ValueError:
                logger.error("Error: Invalid input format. Please provide a proper json string.")
                return False
        logger.warning("Warning: var %s not found.", var_name)
        return False

    @abstractmethod
    def validate_env_vars(self):
        """
        Abstract method for validation of the env vars.
        """


class RolodexConfig(BaseConfig):
    """
    Settings for the relationship engine.

    MONGO_URI, MONGO_DATABASE  -- where the three collections live
    DB_BACKEND                 -- ``mongodb`` (default) or ``memory``
    SYNC_MAX_WORKERS           -- parallel counterpart updates per sweep (1 = sequential)
    """

    DEFAULTS = {
        'MONGO_URI': 'mongodb://localhost:27017',
        'MONGO_DATABASE': 'rolodex',
        'DB_BACKEND': 'mongodb',
        'SYNC_MAX_WORKERS': '1',
    }

    def __init__(self):
        super().__init__()
        for key, value in self.DEFAULTS.items():
            if not self.env_vars.get(key):
                self.env_vars[key] = value
        self.validate_env_vars()

    def validate_env_vars(self):
        errors = []
        if self.env_vars['DB_BACKEND'] not in ('mongodb', 'memory'):
            errors.append(f"DB_BACKEND must be 'mongodb' or 'memory', got '{self.env_vars['DB_BACKEND']}'")
        try:
            workers = int(self.env_vars['SYNC_MAX_WORKERS'])
            if workers < 1:
                errors.append("SYNC_MAX_WORKERS must be at least 1")
            else:
                self.env_vars['SYNC_MAX_WORKERS'] = workers
        except (TypeError, ValueError):
            errors.append(f"SYNC_MAX_WORKERS must be an integer, got '{self.env_vars['SYNC_MAX_WORKERS']}'")
        if errors:
            raise ValidationError(errors)
        return True

    @property
    def sync_max_workers(self) -> int:
        return self.env_vars['SYNC_MAX_WORKERS']
