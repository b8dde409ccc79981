# ims/config.py
from __future__ import annotations
import os


STOCK_POLICY_ALLOW = "allow"
STOCK_POLICY_REJECT = "reject"
STOCK_POLICY_CLAMP = "clamp"
STOCK_POLICIES = {STOCK_POLICY_ALLOW, STOCK_POLICY_REJECT, STOCK_POLICY_CLAMP}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/ims.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///ims.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # What happens when a stock delta would take a product below zero:
    # allow (store the negative value), reject (abort the transaction), clamp (floor at 0)
    STOCK_NEGATIVE_POLICY = os.environ.get("IMS_STOCK_NEGATIVE_POLICY", STOCK_POLICY_ALLOW)

    LOG_LEVEL = os.environ.get("IMS_LOG_LEVEL", "INFO")
