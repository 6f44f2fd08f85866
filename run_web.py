#!/usr/bin/env python3
"""
Main entry point for the Game Stats Tracker web application.

This script configures logging and launches the Flask-based web server.
"""
import logging

from gamestats.config import Config
from gamestats.ui.web_app import run_web_app

if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_web_app(host=Config.HOST, port=Config.PORT)
