"""Modbus scrape endpoint."""

from typing import Optional

from fastapi import APIRouter, Request, Response

router = APIRouter()


@router.get("/modbus")
def scrape(
    request: Request,
    module: Optional[str] = None,
    target: Optional[str] = None,
    sub_target: Optional[str] = None,
):
    """
    Scrape one Modbus target and expose its values in Prometheus text format.
    
    Query parameters:
    - module: Configured module describing what to read
    - target: host[:port] for tcp modules, serial device path for serial modules
    - sub_target: Modbus unit ID (0-255)
    
    Declared as a plain function so FastAPI runs it in its worker thread pool;
    serial scrapes block on their bus lock there.
    """
    result = request.app.state.scrape_handler.handle(module, target, sub_target)
    return Response(content=result.body, status_code=result.status_code, media_type=result.content_type)
