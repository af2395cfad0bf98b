import pandas as pd

from studio.config import CLASSES, HEADERS, PROFILES
from studio.errors import NotFoundError
from studio.models.classes import StudioClass
from studio.repositories.store import DataStore


def append_class(store: DataStore, new_class: StudioClass) -> StudioClass:
    return StudioClass.from_row(store.insert(CLASSES, new_class.to_row()))


def load_classes(store: DataStore, instructor_id: str | None = None) -> list[StudioClass]:
    filters = {"instructor_id": instructor_id} if instructor_id else None
    return [StudioClass.from_row(r) for r in store.select(CLASSES, filters, order_by="name")]


def get_class(store: DataStore, class_id: str) -> StudioClass:
    row = store.select_one(CLASSES, {"id": class_id})
    if row is None:
        raise NotFoundError(CLASSES, class_id)
    return StudioClass.from_row(row)


def instructor_names(store: DataStore) -> dict[str, str]:
    """Instructors and admins (admins can teach too), id -> name."""
    rows = store.select(PROFILES, {"role": ("in", ["instructor", "admin"])}, order_by="name")
    return {str(r["id"]): str(r.get("name") or "") for r in rows}


def load_classes_df(store: DataStore) -> pd.DataFrame:
    classes = load_classes(store)
    if not classes:
        return pd.DataFrame(columns=HEADERS[CLASSES] + ["schedule", "payment"])

    df = pd.DataFrame([c.to_row() for c in classes])

    # Pretty display: weekdays at time, and the pay rule
    def _pretty_schedule(c: StudioClass) -> str:
        if not c.schedule.days:
            return ""
        days = ", ".join(d.capitalize() for d in c.schedule.days)
        return f"{days} @ {c.schedule.time}"

    def _pretty_payment(c: StudioClass) -> str:
        p = c.payment_policy
        return f"${p.flat_amount:,.2f} flat" if p.is_flat else f"{p.share:g}%"

    df["schedule"] = [_pretty_schedule(c) for c in classes]
    df["payment"] = [_pretty_payment(c) for c in classes]
    return df
