from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from storefront.config import settings


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or settings.db_path
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn

def init_db(db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        with open(os.path.join(os.path.dirname(__file__), "schema.sql"), "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()

def save_session(session_key: str, token: str, user: Dict[str, Any], db_path: Optional[str] = None) -> None:
    saved_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    conn = _connect(db_path)
    try:
        conn.execute(
            "INSERT INTO sessions(session_key, token, user_json, saved_at) VALUES(?,?,?,?) "
            "ON CONFLICT(session_key) DO UPDATE SET token=excluded.token, "
            "user_json=excluded.user_json, saved_at=excluded.saved_at",
            (session_key, token, json.dumps(user, ensure_ascii=False), saved_at),
        )
        conn.commit()
    finally:
        conn.close()

def load_session(session_key: str, db_path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Returns {"token": ..., "user": {...}} or None.
    A row whose user_json is not valid JSON comes back with user=None.
    """
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT token, user_json FROM sessions WHERE session_key = ?",
            (session_key,),
        ).fetchone()
    finally:
        conn.close()

    if not row:
        return None
    try:
        user = json.loads(row["user_json"])
    except ValueError:
        user = None
    return {"token": row["token"], "user": user}

def clear_session(session_key: str, db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        conn.execute("DELETE FROM sessions WHERE session_key = ?", (session_key,))
        conn.commit()
    finally:
        conn.close()

def count_sessions(db_path: Optional[str] = None) -> int:
    conn = _connect(db_path)
    try:
        return int(conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0])
    finally:
        conn.close()
