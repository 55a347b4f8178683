# Overview: Flask API routes for managing the public showcase site content.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, require_module
from ..models import ShowcaseProduct, HeroSlide
from ..services import showcase_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError


SHOWCASE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "category", "image_url", "is_active", "sort_order"},
    required_on_create={"name", "category"},
)

SLIDE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "subtitle", "button_text", "button_link", "image_url", "sort_order", "is_active"},
    required_on_create={"title"},
)

showcase_bp = Blueprint("showcase", __name__, url_prefix="/api/admin")


# Showcase products (catalog module)

@showcase_bp.get("/showcase")
@require_staff
@require_module("products")
def list_showcase_route():
    return jsonify([p.to_dict() for p in showcase_service.list_showcase_products()]), 200


@showcase_bp.post("/showcase")
@require_staff
@require_module("products")
def create_showcase_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ShowcaseProduct, payload=payload, policy=SHOWCASE_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(showcase_service.create_showcase_product(patch).to_dict()), 201


@showcase_bp.put("/showcase/<int:product_id>")
@require_staff
@require_module("products")
def update_showcase_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ShowcaseProduct, payload=payload, policy=SHOWCASE_POLICY, partial=True)
        product = showcase_service.update_showcase_product(product_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(product.to_dict()), 200


@showcase_bp.delete("/showcase/<int:product_id>")
@require_staff
@require_module("products")
def delete_showcase_route(product_id: int):
    try:
        showcase_service.delete_showcase_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


# Hero slides

@showcase_bp.get("/slides")
@require_staff
def list_slides_route():
    return jsonify([s.to_dict() for s in showcase_service.list_slides()]), 200


@showcase_bp.post("/slides")
@require_staff
def create_slide_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=HeroSlide, payload=payload, policy=SLIDE_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(showcase_service.create_slide(patch).to_dict()), 201


@showcase_bp.put("/slides/<int:slide_id>")
@require_staff
def update_slide_route(slide_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=HeroSlide, payload=payload, policy=SLIDE_POLICY, partial=True)
        slide = showcase_service.update_slide(slide_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(slide.to_dict()), 200


@showcase_bp.delete("/slides/<int:slide_id>")
@require_staff
def delete_slide_route(slide_id: int):
    try:
        showcase_service.delete_slide(slide_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


# Site settings

@showcase_bp.get("/site-settings")
@require_staff
def get_site_settings_route():
    return jsonify(showcase_service.get_settings_map()), 200


@showcase_bp.put("/site-settings")
@require_staff
def update_site_settings_route():
    """Body: {"key": "value", ...}; every key is created or overwritten."""
    try:
        settings = showcase_service.upsert_settings(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(settings), 200


# Contact submissions

@showcase_bp.get("/contact-submissions")
@require_staff
def list_contact_submissions_route():
    return jsonify([s.to_dict() for s in showcase_service.list_contact_submissions()]), 200


@showcase_bp.get("/contact-submissions/unread-count")
@require_staff
def unread_contact_count_route():
    return jsonify({"count": showcase_service.count_unread_contact_submissions()}), 200


@showcase_bp.put("/contact-submissions/<int:submission_id>/read")
@require_staff
def mark_contact_read_route(submission_id: int):
    try:
        showcase_service.mark_contact_submission_read(submission_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204


@showcase_bp.delete("/contact-submissions/<int:submission_id>")
@require_staff
def delete_contact_submission_route(submission_id: int):
    try:
        showcase_service.delete_contact_submission(submission_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204
