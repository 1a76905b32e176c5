"""Telegram bot layer: command logic (service) and Telethon wiring (handlers)."""
