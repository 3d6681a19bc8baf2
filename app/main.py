import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.features.scan.services.browser.browser_pool import BrowserPool
from app.features.scan.services.browser.session_manager import BrowserSessionManager
from app.features.scan.services.checkers.axe_checker import AxeChecker
from app.features.scan.services.checkers.base import CheckerSet
from app.features.scan.services.checkers.gigw_checker import GIGWChecker
from app.features.scan.services.checkers.lighthouse_checker import LighthouseChecker
from app.features.scan.services.orchestration.job_controller import InFlightTracker, ScanJobController
from app.features.scan.services.orchestration.scan_orchestrator import ScanOrchestrator
from app.features.scan.services.persistence.scan_store import SqlScanStore
from app.platform.config import settings
from app.platform.db.session import engine, init_db
from app.platform.exceptions import add_exception_handlers

# Configure logging to show INFO level messages
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_scan_controller(store, pool=None) -> ScanJobController:
    tracker = InFlightTracker()
    orchestrator = ScanOrchestrator(
        store=store,
        sessions=BrowserSessionManager(pool=pool),
        checkers=CheckerSet(
            structural=AxeChecker(),
            compliance=GIGWChecker(),
            score=LighthouseChecker(),
        ),
        tracker=tracker,
    )
    return ScanJobController(orchestrator, tracker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    pool = None
    if settings.BROWSER_POOL_ENABLED:
        pool = BrowserPool(size=settings.BROWSER_POOL_SIZE)
        await pool.initialize()

    store = SqlScanStore()
    controller = create_scan_controller(store, pool)
    controller.start()

    app.state.scan_store = store
    app.state.browser_pool = pool
    app.state.job_controller = controller
    try:
        yield
    finally:
        # uvicorn runs this on SIGTERM/SIGINT
        abandoned = await controller.shutdown()
        if pool is not None:
            await pool.close_all()
        await engine.dispose()
        logger.info(f"Shutdown complete ({abandoned} scan(s) abandoned)")


app = FastAPI(
    title=settings.APP_NAME,
    description="Accessibility (WCAG 2.1 / GIGW 3.0) scanning API",
    version="1.0.0",
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Background accessibility scans with WCAG, GIGW and Lighthouse checks.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
