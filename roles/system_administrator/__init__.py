"""System administrator role: workspace directory, mail aliases, DNS and hosting."""

from roles.system_administrator.config import SystemAdministratorConfig, load_config
from roles.system_administrator.orchestrator import COMMANDS, SystemAdministrator, main

__all__ = ["SystemAdministrator", "SystemAdministratorConfig", "load_config", "COMMANDS", "main"]
