import os
import logging
from dotenv import load_dotenv
from flask import Flask, jsonify

from relnotes import __version__
from relnotes.cache import TTLCache

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_app(config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)
    if config:
        app.config.update(config)

    if not os.environ.get("LINEAR_API_KEY") and "RELEASE_NOTES_SERVICE" not in app.config:
        logger.warning("LINEAR_API_KEY environment variable not set. Requests must pass linear_api_key.")

    if "PROJECTS_CACHE" not in app.config:
        ttl_s = float(os.environ.get("PROJECTS_CACHE_TTL_S") or 600)
        app.config["PROJECTS_CACHE"] = TTLCache(ttl_s=ttl_s)

    if "CONTEXT_STORE" not in app.config and "RELEASE_NOTES_SERVICE" not in app.config:
        from relnotes.resources.release_notes.context_store import InMemoryContextStore
        app.config["CONTEXT_STORE"] = InMemoryContextStore.from_env()

    with app.app_context():
        # Import and register blueprints from each resource
        from relnotes.resources.release_notes.endpoints import release_notes_bp, get_manifest as get_release_notes_manifest

        app.register_blueprint(release_notes_bp)

        logger.info("Registered release notes blueprint.")

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check endpoint for startup probes."""
        return jsonify({"status": "healthy", "service": "relnotes"})

    @app.route('/mcp/manifest', methods=['GET'])
    def combined_manifest():
        """
        Dynamically generates a combined manifest from all registered resources.
        """
        release_notes_manifest = get_release_notes_manifest()

        manifest = {
            "name": "Relnotes Release Notes Agent",
            "version": __version__,
            "description": "Builds release-note prompts from Linear issues and organization context.",
            "tools": release_notes_manifest.get('tools', [])
        }
        return jsonify(manifest)

    return app

if __name__ == '__main__':
    load_dotenv()
    app = create_app()
    port = int(os.environ.get("PORT", 8080))
    app.run(debug=False, host='0.0.0.0', port=port)
