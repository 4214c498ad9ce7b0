"""
API Endpoint URL Constants

This module defines the URL paths used throughout the application.
The paths are relative to the mount point of each app
(`/admin`, `/user` or `/public`).
"""

# -------------------------------
# Authentication & Tokens
# -------------------------------
URL_ACCOUNT_TOKEN = "/account/token"

# -------------------------------
# Account
# -------------------------------
URL_ACCOUNT = "/account"
URL_ACCOUNT_PASSWORD = "/account/password"
URL_PASSWORD_FORGOT = "/account/password/forgot"
URL_PASSWORD_RESET = "/account/password/reset"

# -------------------------------
# Fines
# -------------------------------
URL_DASHBOARD = "/dashboard"
URL_TRAFFIC_RULE = "/rule"
URL_VEHICLE = "/vehicle"
URL_VIOLATION = "/violation"
