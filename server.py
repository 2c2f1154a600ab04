# Deploy: set the SMS_* secrets (and CRON_SECRET) then run 'uvicorn server:app --host=0.0.0.0 --port=8000'
import logging

from absence_notifier.api import create_app

logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler()])

app = create_app()

__all__ = ["app"]
