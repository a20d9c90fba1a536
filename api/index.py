"""
Vercel serverless entry point for the CourseBuddy API.
"""
import sys
import os

# Project root holds the coursebuddy package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coursebuddy.api.main import app  # noqa: E402,F401
