import logging

from fastapi import FastAPI

from lockeradmin.infrastructure.config import Settings
from lockeradmin.presentation.routers import router
from lockeradmin.services.dashboard_service import Dashboard


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None, dashboard: Dashboard | None = None) -> FastAPI:
    if settings is None:
        from lockeradmin.infrastructure.config import settings

    configure_logging(settings.log_level)
    application = FastAPI(title="Locker Admin")
    application.state.dashboard = dashboard or Dashboard.from_settings(settings)

    @application.on_event("startup")
    def _start_dashboard() -> None:
        """
        Subscribe to the locker and reservation collections for the lifetime of the app
        """
        application.state.dashboard.start()

    @application.on_event("shutdown")
    def _stop_dashboard() -> None:
        application.state.dashboard.stop()

    application.include_router(router)
    return application


app = create_app()
