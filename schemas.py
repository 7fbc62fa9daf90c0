from pydantic import BaseModel, Field
from typing import Optional, List

class UrlData(BaseModel):
    url: str
    createdAt: str

class LinkRecord(UrlData):
    code: str

class ClickEvent(BaseModel):
    timestamp: str
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    timezone: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    asOrganization: Optional[str] = None
    userAgent: Optional[str] = None
    referer: Optional[str] = None

class ShortenResp(BaseModel):
    code: str
    shortUrl: str
    statsUrl: str
    originalUrl: str

class CountryStat(BaseModel):
    country: str
    count: int
    percentage: float = Field(..., description="Share of all clicks, 0-100")

class RecentClick(ClickEvent):
    ago: str
    location: str

class StatsResp(BaseModel):
    code: str
    shortUrl: str
    statsUrl: str
    originalUrl: str
    createdAt: str
    totalClicks: int
    countries: List[CountryStat]
    recentClicks: List[RecentClick]

class DashboardEntry(LinkRecord):
    clicks: int
