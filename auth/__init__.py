"""
Authentication package for the Flask app.

This package implements Microsoft Entra ID sign-in via MSAL (OAuth2
Authorization Code Flow) and keeps each user's MSAL token cache in their
session through `token_storage.SessionTokenCache`.
"""
