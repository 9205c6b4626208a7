# backend/routes/stats.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.stats import StatsResponse
from services.reporting import ReportingService
from utils.auth import require_admin

router = APIRouter(
    prefix="/stats",
    tags=["Stats"]
)


# Dashboard: inventory totals, recent activity by type and the top movers
@router.get("", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return ReportingService(db).stats()
