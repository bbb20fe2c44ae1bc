from contextlib import asynccontextmanager
from fastapi import FastAPI
from handlers import router as handlers_router
import shutil
import logging
import os

import utils

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

logger = logging.getLogger(__name__)


def ensure_writable_data_copy():
	"""Ensure the runtime data store exists. On first start (or on platforms
	where the project tree is read-only) seed it from the repository
	`data.json` so the app can read/write it at runtime."""
	try:
		if not utils.DATA_PATH.exists():
			if utils.SEED_PATH.exists():
				shutil.copy2(utils.SEED_PATH, utils.DATA_PATH)
				logger.info(f"Copied data.json to {utils.DATA_PATH}")
			else:
				logger.warning("Repository data.json not found; skipping copy to %s", utils.DATA_PATH)
	except OSError as e:
		# Don't crash startup for copy errors; requests touching the store will fail with their own error.
		logger.exception("Failed to prepare %s: %s", utils.DATA_PATH, e)


@asynccontextmanager
async def lifespan(app: FastAPI):
	ensure_writable_data_copy()
	yield


app = FastAPI(title="Storefront API", lifespan=lifespan)
app.include_router(handlers_router) # Loading handlers and routes
