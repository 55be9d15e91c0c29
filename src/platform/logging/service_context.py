"""
Service context for log lines.

Tags every record with where it came from so that logs from several
study-space clients running side by side can be told apart.
"""

import os
from functools import lru_cache
import socket


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'study-space')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Containers get their hostname from the orchestrator; local runs use the PID
    if os.getenv('CONTAINER_HOSTNAME_AS_ID'):
        instance_id = socket.gethostname()[:12]
    else:
        instance_id = str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance_id}'
