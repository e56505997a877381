from flask import Blueprint, current_app, g, jsonify, redirect, request
from flask_jwt_extended import unset_jwt_cookies

from messageboard.errors import (
    AuthError,
    DeleteNotAllowed,
    PersistenceError,
    StorageError,
)
from messageboard.services.backend import get_backend
from messageboard.views.navigation import FEED_ROUTE, LOGIN_ROUTE, Navigator
from messageboard.views.post_composer import Attachment, PostComposer
from messageboard.views.post_feed import FeedStatus, PostFeed
from messageboard.views.session_guard import session_required


post_bp = Blueprint("posts", __name__)


def _feed(navigator=None):
    return PostFeed(
        get_backend(),
        g.current_user,
        g.access_token,
        navigator=navigator,
        bucket=current_app.config["IMAGES_BUCKET"],
    )


def _read_attachment():
    file = request.files.get("picture") or request.files.get("image")
    if not file or not file.filename:
        return None

    return Attachment(
        data=file.read(),
        content_type=file.mimetype or "",
        filename=file.filename,
    )


@post_bp.route("/posts", methods=["GET"])
@session_required
def list_posts():
    feed = _feed()
    feed.refresh()
    payload = feed.render()
    payload["user"] = {"id": g.current_user.id, "email": g.current_user.email}

    if feed.state.status is FeedStatus.ERRORED:
        return jsonify(payload), 503
    return jsonify(payload), 200


@post_bp.route("/new-post", methods=["GET"])
@session_required
def new_post_page():
    return jsonify({"message": "Write a post", "user": g.current_user.email}), 200


@post_bp.route("/new-post", methods=["POST"])
@session_required
def create_post():
    content_type = (request.content_type or "").lower()
    attachment = None

    if "multipart/form-data" in content_type or "form-urlencoded" in content_type:
        content = request.form.get("content")
        attachment = _read_attachment()
    else:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON body"}), 400
        content = data.get("content")

    navigator = Navigator()
    composer = PostComposer(
        get_backend(),
        g.access_token,
        navigator,
        bucket=current_app.config["IMAGES_BUCKET"],
        max_attachment_bytes=current_app.config["MAX_ATTACHMENT_BYTES"],
    )

    try:
        composer.submit_post(content, attachment)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError:
        return redirect(LOGIN_ROUTE)
    except PersistenceError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError as e:
        return jsonify({"error": str(e)}), 503

    return navigator.redirect()


@post_bp.route("/posts/<int:post_id>/delete", methods=["POST"])
@session_required
def delete_post(post_id):
    feed = _feed()

    try:
        post = feed.find(post_id)
        if post is None:
            return jsonify({"error": "Post not found"}), 404
        feed.delete(post)
    except DeleteNotAllowed as e:
        return jsonify({"error": str(e)}), 403
    except PersistenceError as e:
        return jsonify({"error": str(e)}), 400

    return redirect(FEED_ROUTE, code=303)


@post_bp.route("/logout", methods=["POST"])
@session_required
def logout():
    navigator = Navigator()

    try:
        _feed(navigator).logout()
    except AuthError as e:
        return jsonify({"error": str(e)}), 400

    response = navigator.redirect(default=LOGIN_ROUTE)
    unset_jwt_cookies(response)
    return response
