import json

import gspread
import streamlit as st
from google.oauth2.service_account import Credentials

from studio.repositories.postgres_store import PostgresStore
from studio.repositories.sheets_store import SheetsStore
from studio.utils.clock import Clock


# -----------------------------
# Google Sheets client (safe to cache)
# -----------------------------
@st.cache_resource
def get_gsheets_client():
    creds_dict = st.secrets["GOOGLE_SHEETS_CREDENTIALS"]
    if isinstance(creds_dict, str):
        creds_dict = json.loads(creds_dict)

    credentials = Credentials.from_service_account_info(
        creds_dict,
        scopes=[
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ],
    )
    return gspread.authorize(credentials)


@st.cache_resource
def get_spreadsheet():
    client = get_gsheets_client()
    sheet_id = st.secrets["GOOGLE_SHEET_ID"]
    return client.open_by_key(sheet_id)


@st.cache_resource
def get_store():
    # A database wins over the spreadsheet when both are configured
    dsn = st.secrets.get("DATABASE_URL")
    if dsn:
        return PostgresStore(dsn)
    return SheetsStore(get_spreadsheet())


@st.cache_resource
def get_clock() -> Clock:
    return Clock(st.secrets.get("STUDIO_TIMEZONE", "UTC"))
