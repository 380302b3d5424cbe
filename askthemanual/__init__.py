"""
Main package for the AskTheManual application.

This package contains the session orchestration engine, the Gemini File
Search adapter, the upload pipeline, and rendering utilities.
"""
