import uuid
from datetime import time

import streamlit as st

from studio.config import DEFAULT_SESSION_TIME, WEEKDAYS
from studio.errors import StudioError
from studio.models.classes import FLAT, PERCENTAGE, StudioClass
from studio.repositories.classes_repo import append_class, instructor_names, load_classes, load_classes_df
from studio.repositories.sessions_repo import load_sessions_df
from studio.services.batches import (
    approve_batch,
    finalize_payment_batch,
    instructor_payment_day,
    load_batches,
    mark_batch_paid,
)
from studio.services.checkin import check_in_from_qr, check_in_guest
from studio.services.payments import (
    export_line_items_csv,
    filter_line_items,
    line_items_frame,
    outstanding_line_items,
    summarize_line_items,
)
from studio.services.recurrence import month_bounds, payment_week_boundaries, upcoming_sessions
from studio.services.sales import sell_class_package, sell_credit_package
from studio.services.sessions import ensure_month_sessions
from studio.services.store_client import get_clock, get_store
from studio.ui.state import (
    ALL,
    KEY_FILTER_CLASS,
    KEY_FILTER_INSTRUCTOR,
    KEY_SALE_ROWS,
    KEY_SHOW_ADMIN_EARNINGS,
    add_sale_row,
    apply_reset_if_marked,
    clear_payment_filters,
    init_state_if_missing,
    mark_reset,
    remove_sale_row,
    selected_filter,
)
from studio.utils.log import configure_logging
from studio.utils.money import format_currency, parse_amount_or


configure_logging(bool(st.secrets.get("VERBOSE", False)))


# -----------------------------
# Auth
# -----------------------------
def require_password():
    if st.session_state.get("authenticated"):
        return

    with st.form("login"):
        pw = st.text_input("Password", type="password")
        ok = st.form_submit_button("Login")

    if not ok:
        st.stop()

    if pw == st.secrets["APP_PASSWORD"]:
        st.session_state["authenticated"] = True
        st.rerun()
    else:
        st.error("Incorrect password")
        st.stop()

require_password()

store = get_store()
clock = get_clock()
init_state_if_missing()
apply_reset_if_marked()

classes = load_classes(store)
class_names = {c.id: c.name for c in classes}
instructors = instructor_names(store)

tab_classes, tab_sessions, tab_sales, tab_checkin, tab_payments, tab_batches = st.tabs(
    ["Classes", "Monthly Sessions", "Sales", "Check-in", "Payments", "Batches"]
)

with tab_classes:
    class_name = st.text_input("Class name", key="class_name")
    instructor_id = st.selectbox(
        "Instructor",
        [None] + list(instructors),
        format_func=lambda i: "-" if i is None else instructors[i],
    )
    days = st.multiselect("Weekdays", WEEKDAYS, key="class_days", format_func=str.capitalize)
    start_time = st.time_input("Time", value=time.fromisoformat(DEFAULT_SESSION_TIME), key="class_time")

    c1, c2 = st.columns(2)
    with c1:
        payment_type = st.radio("Instructor pay", [PERCENTAGE, FLAT], horizontal=True, key="payment_type")
    with c2:
        payment_value = st.text_input("Percentage or flat amount", key="payment_value")

    if st.button("Create class", key="create_class_btn"):
        if not class_name.strip():
            st.error("Class name is required.")
        else:
            new_class = StudioClass.create(
                id=str(uuid.uuid4()),
                name=class_name,
                instructor_id=instructor_id,
                schedule_days=days,
                schedule_time=(start_time or time(18)).strftime("%H:%M"),
                payment_type=payment_type,
                payment_value=parse_amount_or(payment_value, default=None),
            )
            append_class(store, new_class)
            st.success(f"Created: {new_class.name}")
            mark_reset()
            st.rerun()

    st.subheader("Existing classes")
    df = load_classes_df(store)
    preferred_cols = ["name", "schedule", "payment", "instructor_id"]
    st.dataframe(
        df[preferred_cols] if (not df.empty and all(c in df.columns for c in preferred_cols)) else df,
        use_container_width=True,
    )

    for cls in classes:
        with st.expander(f"Upcoming: {cls.name}"):
            upcoming = upcoming_sessions(cls, clock)
            if not upcoming:
                st.caption("No recurring schedule.")
            for occ in upcoming:
                st.write(f"{occ.date:%a %d %b %Y} {occ.time}")


with tab_sessions:
    st.header("Monthly Sessions")
    month_first = st.date_input(
        "Month",
        value=clock.today().replace(day=1),
        help="Pick any date in the month; the app uses that month.",
        key="sessions_month",
    ).replace(day=1)

    if st.button("Create sessions for this month"):
        created = ensure_month_sessions(store, classes, month_first)
        st.success(f"{len(created)} sessions scheduled.")

    first, last = month_bounds(month_first)
    month_df = load_sessions_df(store, first, last)
    if month_df.empty:
        st.info("No sessions in this month.")
    else:
        month_df["class_name"] = month_df["class_id"].map(class_names)
        st.dataframe(
            month_df[["session_date", "session_time", "class_name", "created_from"]],
            use_container_width=True,
            hide_index=True,
        )


with tab_sales:
    st.header("Sell a class package")
    buyer = st.text_input("User id", key="sale_user")
    c1, c2, c3 = st.columns(3)
    with c1:
        package_name = st.text_input("Package", key="sale_package")
    with c2:
        num_classes = st.number_input("Classes", min_value=1, value=4, step=1, key="sale_num_classes")
    with c3:
        amount = st.text_input("Amount paid", key="sale_amount")

    b1, b2, _ = st.columns([1, 1, 6])
    with b1:
        st.button("Add", on_click=add_sale_row, key="add_sale_row_btn")
    with b2:
        st.button("Reset", on_click=mark_reset, key="reset_sale_btn")

    for row in st.session_state[KEY_SALE_ROWS]:
        rid = row["row_id"]
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            row["class_id"] = st.selectbox(
                "Class",
                list(class_names),
                format_func=class_names.get,
                key=f"sale_class_{rid}",
                label_visibility="collapsed",
            )
        with col2:
            row["session_date"] = st.date_input("Date", value=None, key=f"sale_date_{rid}", label_visibility="collapsed")
        with col3:
            st.button("Remove", on_click=remove_sale_row, args=(rid,), key=f"remove_{rid}")

    if st.button("Sell package", type="primary"):
        selections = [(r["class_id"], r["session_date"]) for r in st.session_state[KEY_SALE_ROWS]]
        if not buyer.strip() or not package_name.strip():
            st.error("User and package are required.")
        elif any(not cid or not d for cid, d in selections):
            st.error("Complete every class/date selection.")
        else:
            try:
                sell_class_package(
                    store,
                    user_id=buyer.strip(),
                    package_id=package_name.strip(),
                    package_name=package_name.strip(),
                    num_classes=int(num_classes),
                    amount_paid=parse_amount_or(amount),
                    selections=selections,
                    assigned_by=None,
                    clock=clock,
                )
            except (StudioError, ValueError) as exc:
                st.error(f"Sale failed: {exc}")
            else:
                st.success("Package sold.")
                mark_reset()

    st.header("Sell drop-in credits")
    with st.form("credit_sale"):
        credit_user = st.text_input("User id")
        credit_name = st.text_input("Credit package")
        credits = st.number_input("Credits", min_value=1, value=10, step=1)
        credit_amount = st.text_input("Amount paid")
        credit_type = st.radio("Instructor pay", [PERCENTAGE, FLAT], horizontal=True)
        credit_value = st.text_input("Percentage or flat amount", value="70")
        if st.form_submit_button("Sell credits"):
            try:
                sell_credit_package(
                    store,
                    user_id=credit_user.strip(),
                    package_id=credit_name.strip(),
                    package_name=credit_name.strip(),
                    num_credits=int(credits),
                    amount_paid=parse_amount_or(credit_amount),
                    assigned_by=None,
                    clock=clock,
                    payment_type=credit_type,
                    payment_value=parse_amount_or(credit_value, default=None),
                )
            except StudioError as exc:
                st.error(f"Sale failed: {exc}")
            else:
                st.success("Credits sold.")


with tab_checkin:
    st.header("Check-in")
    checkin_class = st.selectbox("Class", list(class_names), format_func=class_names.get, key="checkin_class")
    qr_data = st.text_input("Scanned QR code", key="checkin_qr")
    if st.button("Check in member") and checkin_class:
        try:
            result = check_in_from_qr(store, checkin_class, qr_data, clock)
        except StudioError as exc:
            st.error(str(exc))
        else:
            st.success(f"Checked in ({result.payment_method}).")

    with st.form("guest"):
        guest = st.text_input("Guest name")
        if st.form_submit_button("Check in guest") and checkin_class:
            try:
                check_in_guest(store, checkin_class, guest, clock)
            except StudioError as exc:
                st.error(str(exc))
            else:
                st.success(f"{guest} checked in.")


with tab_payments:
    st.header("Outstanding instructor payments")
    c1, c2, c3 = st.columns([2, 2, 1])
    with c1:
        st.selectbox(
            "Instructor",
            [ALL] + list(instructors),
            format_func=lambda i: "All" if i == ALL else instructors[i],
            key=KEY_FILTER_INSTRUCTOR,
        )
    with c2:
        st.selectbox(
            "Class",
            [ALL] + list(class_names),
            format_func=lambda i: "All" if i == ALL else class_names[i],
            key=KEY_FILTER_CLASS,
        )
    with c3:
        st.button("Clear", on_click=clear_payment_filters)
    show_admin = st.toggle("Show admin earnings", key=KEY_SHOW_ADMIN_EARNINGS)

    items = filter_line_items(
        outstanding_line_items(store),
        instructor_id=selected_filter(KEY_FILTER_INSTRUCTOR),
        class_id=selected_filter(KEY_FILTER_CLASS),
    )
    totals = summarize_line_items(items)

    m = st.columns(4 if show_admin else 2)
    m[0].metric("Student revenue", format_currency(totals["total_student_revenue"]), f"{totals['count']} enrollments")
    m[1].metric("Instructor payments", format_currency(totals["total_instructor_payments"]))
    if show_admin:
        m[2].metric("Admin earnings", format_currency(totals["total_admin_earnings"]))
        m[3].metric("Avg per enrollment", format_currency(totals["avg_revenue_per_enrollment"]))

    st.dataframe(line_items_frame(items, show_admin), use_container_width=True, hide_index=True)
    st.download_button(
        "Download CSV",
        export_line_items_csv(items, show_admin),
        file_name=f"payments_{clock.today().isoformat()}.csv",
        mime="text/csv",
    )

    instructor_filter = selected_filter(KEY_FILTER_INSTRUCTOR)
    if instructor_filter and items:
        start, end = payment_week_boundaries(clock, instructor_payment_day(store, instructor_filter))
        st.caption(f"Pay period {start:%d %b} to {end:%d %b %Y}")
        if st.button("Finalize batch", type="primary"):
            try:
                batch = finalize_payment_batch(store, instructor_filter, items, start.date(), end.date(), clock)
            except StudioError as exc:
                st.error(str(exc))
            else:
                st.success(f"Batch of {format_currency(batch.total_amount)} created.")
                st.rerun()


with tab_batches:
    st.header("Payment batches")
    for batch in load_batches(store):
        who = instructors.get(batch.instructor_id, batch.instructor_id)
        st.subheader(f"{who}: {format_currency(batch.total_amount)} ({batch.status})")
        st.caption(f"{batch.week_start} to {batch.week_end}, {len(batch.item_ids)} items")
        c1, c2, _ = st.columns([1, 1, 6])
        try:
            if c1.button("Approve", key=f"approve_{batch.id}", disabled=batch.status != "pending"):
                approve_batch(store, batch.id, "admin", clock)
                st.rerun()
            if c2.button("Mark paid", key=f"paid_{batch.id}", disabled=batch.status != "approved"):
                mark_batch_paid(store, batch.id, clock)
                st.rerun()
        except StudioError as exc:
            st.error(str(exc))
        st.divider()
