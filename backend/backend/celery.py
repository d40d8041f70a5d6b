"""
Celery application for the backend project.

Workers start with::

    celery -A backend worker -l info
    celery -A backend beat -l info

Configuration is read from Django settings under the ``CELERY_``
namespace, and tasks are discovered from each installed app's
``tasks`` module.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")

app = Celery("backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
