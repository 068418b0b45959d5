#!/usr/bin/env python3
"""
Main entry point for the recruitment portal API.

Serves the JSON endpoints used by the web front end:
- registration, email verification and login for all roles
- candidate profiles, CV uploads and AI-assisted CV extraction
- job postings managed by MIS staff
"""

from app import create_app

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
