from flask import Flask, jsonify
from asgiref.wsgi import WsgiToAsgi
from remediator.config import configure_logging, settings

configure_logging(settings.LOG_LEVEL)

app = Flask(__name__)

@app.route("/")
async def home():
    return jsonify({
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    })

@app.route("/health")
async def health():
    return jsonify({
        "status": "healthy",
        "mode": settings.AGENT_MODE,
        "model": settings.MODEL,
    }), 200

# Blueprints
from remediator.api.routes_agent import bp as agent_bp
from remediator.api.routes_webhooks import bp as webhooks_bp

app.register_blueprint(agent_bp)
app.register_blueprint(webhooks_bp)

# WsgiToAsgi wrapper for Uvicorn
asgi_app = WsgiToAsgi(app)
