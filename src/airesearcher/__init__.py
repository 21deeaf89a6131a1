# AI Researcher - Installation, update and backup orchestration

"""
Setup layer for the AI Researcher desktop workspace.
Creates the application data directory, detects optional AI CLI tools,
and keeps user data safe across application updates.
"""

__version__ = "0.3.0"
__app_name__ = "AI Researcher"
