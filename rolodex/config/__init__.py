from .config import BaseConfig, RolodexConfig
