"""
Common Dependencies for FastAPI Routes
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import httpx

from app.config import Settings, get_settings
from app.services.pdv_service import ExternalApiNotConfigured, PdvService
from app.services.sales_report_service import SalesReportService

security = HTTPBearer(auto_error=False)


async def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Bearer token of the caller, forwarded as-is to the PDV backend
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared AsyncClient created in the application lifespan"""
    return request.app.state.http_client


def get_pdv_service(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> PdvService:
    try:
        return PdvService(settings.EXTERNAL_API_BASE_URL, http_client)
    except ExternalApiNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="External API URL not configured",
        )


def get_sales_report_service(
    access_token: str = Depends(get_access_token),
    pdv: PdvService = Depends(get_pdv_service),
    settings: Settings = Depends(get_settings),
) -> SalesReportService:
    return SalesReportService(pdv, access_token, settings)
