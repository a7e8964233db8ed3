"""Reflex configuration for the admin grid demo app."""

import reflex as rx

config = rx.Config(
    app_name="admin_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
