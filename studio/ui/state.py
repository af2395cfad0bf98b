# studio/ui/state.py
import uuid
import streamlit as st

# Centralize keys to avoid typos across files
KEY_SALE_ROWS = "sale_session_rows"
KEY_DO_RESET = "_do_reset"

KEY_CLASS_NAME = "class_name"
KEY_CLASS_DAYS = "class_days"
KEY_CLASS_TIME = "class_time"
KEY_PAYMENT_TYPE = "payment_type"
KEY_PAYMENT_VALUE = "payment_value"

KEY_FILTER_INSTRUCTOR = "filter_instructor"
KEY_FILTER_CLASS = "filter_class"
KEY_SHOW_ADMIN_EARNINGS = "show_admin_earnings"

ALL = "all"


def _new_sale_row(class_id: str = "", session_date=None) -> dict:
    return {"row_id": str(uuid.uuid4()), "class_id": class_id, "session_date": session_date}


def init_state_if_missing() -> None:
    """Call at the top of the page before rendering widgets."""
    if KEY_SALE_ROWS not in st.session_state:
        st.session_state[KEY_SALE_ROWS] = [_new_sale_row()]
    st.session_state.setdefault(KEY_FILTER_INSTRUCTOR, ALL)
    st.session_state.setdefault(KEY_FILTER_CLASS, ALL)
    st.session_state.setdefault(KEY_SHOW_ADMIN_EARNINGS, False)


def add_sale_row() -> None:
    st.session_state[KEY_SALE_ROWS].append(_new_sale_row())


def remove_sale_row(row_id: str) -> None:
    st.session_state[KEY_SALE_ROWS] = [
        r for r in st.session_state[KEY_SALE_ROWS] if r["row_id"] != row_id
    ]
    if not st.session_state[KEY_SALE_ROWS]:
        st.session_state[KEY_SALE_ROWS] = [_new_sale_row()]


def clear_payment_filters() -> None:
    st.session_state[KEY_FILTER_INSTRUCTOR] = ALL
    st.session_state[KEY_FILTER_CLASS] = ALL


def selected_filter(key: str):
    value = st.session_state.get(key, ALL)
    return None if value == ALL else value


def mark_reset() -> None:
    st.session_state[KEY_DO_RESET] = True


def apply_reset_if_marked() -> None:
    """
    If you use a 'reset on next run' pattern, call this at the very top
    of the page BEFORE creating widgets.
    """
    if st.session_state.get(KEY_DO_RESET):
        # Reset fields
        st.session_state[KEY_CLASS_NAME] = ""
        st.session_state[KEY_CLASS_DAYS] = []
        st.session_state[KEY_CLASS_TIME] = None
        st.session_state[KEY_PAYMENT_VALUE] = ""
        st.session_state[KEY_SALE_ROWS] = [_new_sale_row()]
        st.session_state[KEY_DO_RESET] = False
