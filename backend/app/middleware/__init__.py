# Middleware package init
"""
QPaperHub Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Rate Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so every later log line and every error body
       (including 429s from the rate limiter) carries the correlation id
    2. Logging wraps the rate limiter, so rejected requests are logged too
    3. Rate Limit rejects abusive clients before any route work happens
"""
