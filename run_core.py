#!/usr/bin/env python3
"""
Startup script for the relnotes Flask app.
Run this to start the HTTP API that builds release-note prompts from Linear issues.
"""

import os

from dotenv import load_dotenv

from app import create_app

if __name__ == "__main__":
    load_dotenv()
    port = int(os.environ.get("PORT", 8080))
    print("🚀 Starting relnotes Flask server...")
    print(f"📡 API will be available at: http://localhost:{port}")
    print(f"📝 Prompt endpoint: http://localhost:{port}/mcp/tools/generate_release_notes_prompt")
    print(f"📚 Manifest at: http://localhost:{port}/mcp/manifest")
    print("\nPress Ctrl+C to stop the server")

    app = create_app()
    app.run(debug=False, host='0.0.0.0', port=port)
