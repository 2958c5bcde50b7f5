"""
Service context for log lines.

Identifies the emitting process so interleaved logs from several workers
sharing one cache/database can be told apart.
"""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'restaurant-booking')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')
    worker = os.getenv('HOSTNAME') or str(os.getpid())
    return f'{service_name}@{deploy_env}:{worker}'
