# localpress/services/ads.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from localpress.db.models import Ad, AdSlotAssignment, AdSetting, AdImpression, AdClick, utc_now

logger = logging.getLogger("localpress.ads")


@dataclass
class SlotAd:
    """An ad as displayed in one slot, with that slot's fill setting."""
    ad: Ad
    fill_section: bool = True

    def as_dict(self) -> dict:
        return {
            "id": self.ad.id,
            "title": self.ad.title,
            "image_url": self.ad.image_url,
            "link_url": self.ad.link_url,
            "runtime_seconds": self.ad.runtime_seconds,
            "display_order": self.ad.display_order,
            "fill_section": self.fill_section,
            "object_fit": "cover" if self.fill_section else "contain",
        }


@dataclass
class SlotResolution:
    slot: str
    ads: List[SlotAd] = field(default_factory=list)
    setting: Optional[AdSetting] = None

    @property
    def current(self) -> Optional[SlotAd]:
        return self.ads[0] if self.ads else None

    @property
    def fallback(self) -> Optional[str]:
        if self.ads or not self.setting or not self.setting.use_fallback:
            return None
        return self.setting.fallback_ad_code

    @property
    def rotates(self) -> bool:
        return sum(1 for a in self.ads if a.ad.runtime_seconds) > 1

    def as_dict(self) -> dict:
        current = self.current
        return {
            "slot": self.slot,
            "size_class": slot_size_class(self.slot),
            "ad": current.as_dict() if current else None,
            "ads": [a.as_dict() for a in self.ads],
            "rotates": self.rotates,
            "fallback": self.fallback,
        }


def slot_size_class(slot: str) -> str:
    if "banner" in slot:
        return "banner"
    if "sidebar" in slot:
        return "sidebar"
    return "inline"


def is_in_window(ad: Ad, now: datetime) -> bool:
    return ad.is_active and ad.start_date <= now <= ad.end_date


# ------------------------------
# Slot resolution
# ------------------------------
def resolve_slot(session: Session, slot: str, now: Optional[datetime] = None) -> SlotResolution:
    now = now or utc_now()
    setting = session.exec(select(AdSetting).where(AdSetting.ad_slot == slot)).first()
    resolution = SlotResolution(slot=slot, setting=setting)

    assignments = session.exec(
        select(AdSlotAssignment, Ad)
        .join(Ad, Ad.id == AdSlotAssignment.ad_id)
        .where(AdSlotAssignment.ad_slot == slot)
    ).all()

    if assignments:
        eligible = [
            SlotAd(ad=ad, fill_section=True if assignment.fill_section is None else assignment.fill_section)
            for assignment, ad in assignments
            if is_in_window(ad, now)
        ]
        eligible.sort(key=lambda s: (s.ad.display_order or 0, s.ad.created_at))
        resolution.ads = eligible
        return resolution

    # slots that predate assignments use the ad_slot column on the ad itself
    legacy = session.exec(
        select(Ad)
        .where(Ad.ad_slot == slot)
        .where(Ad.is_active == True)  # noqa: E712
        .where(Ad.start_date <= now)
        .where(Ad.end_date >= now)
        .order_by(Ad.created_at.desc())
        .limit(1)
    ).first()
    if legacy:
        # no per-slot setting on this path, so the ad always fills its section
        resolution.ads = [SlotAd(ad=legacy, fill_section=True)]
    return resolution


def next_rotation(ads: List[SlotAd], index: int) -> Tuple[int, Optional[int]]:
    """
    Return (next_index, delay_seconds) for the ad currently shown at index.

    delay_seconds is None when the slot does not rotate, in which case the
    index stays put.
    """
    if len(ads) <= 1 or sum(1 for a in ads if a.ad.runtime_seconds) <= 1:
        return index, None
    current = ads[index % len(ads)]
    if not current.ad.runtime_seconds:
        return index, None
    return (index + 1) % len(ads), current.ad.runtime_seconds


# ------------------------------
# Admin CRUD
# ------------------------------
def set_ad_slots(session: Session, ad: Ad, slots: List[dict]) -> None:
    """Replace the slot assignments of an ad. Each item: {ad_slot, fill_section}."""
    # delete-orphan cascade removes the previous rows
    ad.assignments = [
        AdSlotAssignment(ad_slot=item["ad_slot"], fill_section=item.get("fill_section", True))
        for item in slots
    ]
    session.add(ad)


def upsert_ad_setting(
    session: Session,
    slot: str,
    use_fallback: bool,
    fallback_ad_code: Optional[str],
    updated_by: Optional[int] = None,
) -> AdSetting:
    setting = session.exec(select(AdSetting).where(AdSetting.ad_slot == slot)).first()
    if not setting:
        setting = AdSetting(ad_slot=slot)
    setting.use_fallback = use_fallback
    setting.fallback_ad_code = fallback_ad_code
    setting.updated_at = utc_now()
    setting.updated_by = updated_by
    session.add(setting)
    session.commit()
    session.refresh(setting)
    return setting


# ------------------------------
# Analytics
# ------------------------------
def record_impression(session: Session, **fields) -> AdImpression:
    row = AdImpression(**fields)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def record_click(session: Session, **fields) -> AdClick:
    row = AdClick(**fields)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def ad_performance(session: Session) -> List[dict]:
    impressions = dict(
        session.exec(select(AdImpression.ad_id, func.count(AdImpression.id)).group_by(AdImpression.ad_id)).all()
    )
    clicks = dict(session.exec(select(AdClick.ad_id, func.count(AdClick.id)).group_by(AdClick.ad_id)).all())

    rows = []
    for ad in session.exec(select(Ad).order_by(Ad.created_at.desc())).all():
        shown = impressions.get(ad.id, 0)
        clicked = clicks.get(ad.id, 0)
        rows.append(
            {
                "ad_id": ad.id,
                "title": ad.title,
                "impressions": shown,
                "clicks": clicked,
                "ctr": round(clicked / shown * 100, 2) if shown else 0.0,
            }
        )
    return rows
