"""
Flask web application exposing the layering service.
Accepts image uploads and returns foreground/background layers as JSON.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from flask import Flask, g, jsonify, request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

from layering import __version__
from layering.cache import LayerCache, cache_key, file_md5
from layering.config import Settings, get_settings
from layering.errors import CacheError, ProcessingError, QueueFullError
from layering.grabcut import GrabCutService
from layering.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_directories(settings: Settings) -> None:
    """Create the upload directory if it doesn't exist."""
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)


def success_response(message: str, data: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {'success': True, 'message': message}
    if data is not None:
        body['data'] = data
    return jsonify(body)


def error_response(message: str, status: int, error: Optional[str] = None):
    body: Dict[str, Any] = {'success': False, 'message': message}
    if error:
        body['error'] = error
    return jsonify(body), status


def validate_file(file: Optional[FileStorage], settings: Settings) -> Tuple[bool, str]:
    """Validate uploaded file."""
    if not file or not file.filename:
        return False, "Please upload an image file."

    content_type = (file.mimetype or '').lower()
    if content_type not in {t.lower() for t in settings.allowed_types}:
        return False, "Unsupported file type, only JPEG/PNG images are accepted."

    return True, ""


def parse_bool(value: Optional[str]) -> bool:
    return (value or '').strip().lower() == 'true'


def create_app(settings: Optional[Settings] = None,
               cache: Optional[LayerCache] = None,
               service: Optional[GrabCutService] = None) -> Flask:
    """Build the Flask application around a cache and a layering service."""
    settings = settings or get_settings()
    cache = cache or LayerCache.from_url(settings.redis_url, settings.redis_ttl)
    service = service or GrabCutService(settings)

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.upload_max_size
    app.config['LAYERKIT_SETTINGS'] = settings

    create_directories(settings)

    @app.before_request
    def start_timer() -> None:
        g.request_start = time.monotonic()

    @app.after_request
    def log_and_cors(response):
        """Request logging and CORS headers."""
        cost = time.monotonic() - g.get('request_start', time.monotonic())
        logger.info(
            "request method=%s path=%s query=%s status=%d ip=%s cost=%.3fs",
            request.method, request.path, request.query_string.decode('utf-8', 'replace'),
            response.status_code, request.remote_addr, cost,
        )
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        return response

    @app.route('/health')
    def health():
        """Readiness probe."""
        return jsonify({'status': 'ok', 'version': settings.version or __version__})

    @app.route('/version')
    def version():
        return jsonify({
            'version': settings.version,
            'build_time': settings.build_time,
            'build_id': settings.build_id,
            'git_commit': settings.git_commit,
            'git_branch': settings.git_branch,
        })

    @app.route('/api/v1/upload', methods=['POST'])
    def upload():
        """Handle an image upload and return its layers."""
        file = request.files.get('image')
        is_valid, error_msg = validate_file(file, settings)
        if not is_valid:
            return error_response(error_msg, 400)

        # Generate a unique name and save the upload
        extension = Path(secure_filename(file.filename)).suffix
        save_path = Path(settings.upload_dir) / f"{uuid4()}{extension}"
        file.save(str(save_path))

        try:
            return _process_upload(save_path, parse_bool(request.form.get('max_foreground_only')))
        finally:
            if settings.cleanup_temp_files:
                try:
                    save_path.unlink()
                    logger.debug("temp file deleted: %s", save_path)
                except OSError as e:
                    logger.warning("failed to delete temp file %s: %s", save_path, e)

    def _process_upload(save_path: Path, max_foreground_only: bool):
        try:
            md5 = file_md5(save_path)
        except OSError as e:
            logger.error("failed to hash upload %s: %s", save_path, e)
            return error_response("Failed to compute file hash.", 500, str(e))

        logger.info(
            "file uploaded filename=%s md5=%s size=%d max_foreground_only=%s",
            save_path.name, md5, save_path.stat().st_size, max_foreground_only,
        )

        key = cache_key(md5, max_foreground_only)
        try:
            cached = cache.get(key)
        except CacheError as e:
            logger.warning("failed to read cache: %s", e)
            cached = None

        if cached is not None:
            logger.info("cache hit: %s", key)
            return success_response("Processed successfully (from cache).", cached.to_dict())

        try:
            result = service.process_image(save_path, md5, max_foreground_only)
        except QueueFullError as e:
            response, status = error_response("Processing queue is full, please retry later.", 503, str(e))
            response.headers['Retry-After'] = str(max(1, int(settings.queue_timeout)))
            return response, status
        except ProcessingError as e:
            logger.error("failed to process image %s: %s", md5, e)
            return error_response("Image processing failed.", 500, str(e))

        try:
            cache.set(key, result)
        except CacheError as e:
            logger.warning("failed to write cache: %s", e)

        return success_response("Processed successfully.", result.to_dict())

    @app.route('/api/v1/layer/<md5>')
    def get_layer(md5: str):
        """Look up a previously computed result by fingerprint."""
        try:
            result = cache.get(md5)
        except CacheError as e:
            logger.error("failed to get layer result: %s", e)
            return error_response("Lookup failed.", 500, str(e))

        if result is None:
            return error_response("No layer information found for this image.", 404)

        return success_response("Lookup succeeded.", result.to_dict())

    @app.errorhandler(413)
    def too_large(e):
        """Handle file too large error."""
        limit_mb = settings.upload_max_size // (1024 * 1024)
        return error_response(f"File exceeds the size limit ({limit_mb} MB).", 413)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("Not found.", 404)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return error_response(e.description or e.name, e.code or 500)

    return app


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "starting layerkit server version=%s build_time=%s git_commit=%s git_branch=%s",
        settings.version, settings.build_time, settings.git_commit, settings.git_branch,
    )

    cache = LayerCache.from_url(settings.redis_url, settings.redis_ttl)
    if cache.ping():
        logger.info("redis connected successfully")
    else:
        logger.warning("redis connection failed, results will not be cached")

    app = create_app(settings, cache=cache)
    try:
        app.run(host=settings.host, port=settings.port, debug=not settings.is_release, threaded=True)
    finally:
        cache.close()


if __name__ == "__main__":
    main()
