"""
cuyfarm - management backend for a guinea-pig (cuy) breeding farm.

Packages:
- cuyfarm.core: persistence, logging, errors and domain constants
- cuyfarm.ops: transport-agnostic business operations
- cuyfarm.alerts: rule-based alerts and notification channels
- cuyfarm.scheduling: cron-driven background jobs
- cuyfarm.reports: report data, file generators and download streaming
- cuyfarm.api: FastAPI REST layer
- cuyfarm.cli: typer command line
"""

__version__ = "0.1.0"
