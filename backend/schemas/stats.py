# schemas/stats.py
from typing import Dict, List
from pydantic import BaseModel

class InventorySummary(BaseModel):
    total_products: int
    total_quantity: int
    low_stock_count: int

class ActivitySummary(BaseModel):
    window_days: int
    total_movements: int
    by_type: Dict[str, int]

# Products with the most non-undone movements in the window
class TopMover(BaseModel):
    product_id: int
    product_name: str
    count: int

class StatsResponse(BaseModel):
    inventory: InventorySummary
    activity: ActivitySummary
    top_movers: List[TopMover]
