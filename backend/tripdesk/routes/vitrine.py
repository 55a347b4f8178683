# Overview: Public showcase ("vitrine") API plus sitemap.xml and robots.txt.

"""
No authentication here. Only active showcase products and slides are
exposed.
"""

from xml.sax.saxutils import escape

from flask import Blueprint, request, jsonify, current_app, Response

from ..models import ContactSubmission
from ..services import showcase_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError


CONTACT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "subject", "message"},
    required_on_create={"name", "subject", "message"},
)

# (path, changefreq, priority)
STATIC_PAGES = [
    ("/", "weekly", "1.0"),
    ("/produtos", "weekly", "0.9"),
    ("/sobre", "monthly", "0.7"),
    ("/contato", "monthly", "0.7"),
]

vitrine_bp = Blueprint("vitrine", __name__)


def _base_url() -> str:
    """siteUrl setting, then SITE_URL config, then the request host."""
    base = showcase_service.get_settings_map().get("siteUrl") or current_app.config.get("SITE_URL")
    if not base:
        base = request.host_url
    return base.rstrip("/")


@vitrine_bp.get("/api/vitrine/products")
def public_products_route():
    products = showcase_service.list_showcase_products(active_only=True)
    return jsonify([p.to_dict() for p in products]), 200


@vitrine_bp.get("/api/vitrine/products/<int:product_id>")
def public_product_route(product_id: int):
    try:
        product = showcase_service.get_showcase_product(product_id, active_only=True)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict()), 200


@vitrine_bp.get("/api/vitrine/slides")
def public_slides_route():
    return jsonify([s.to_dict() for s in showcase_service.list_slides(active_only=True)]), 200


@vitrine_bp.get("/api/vitrine/settings")
def public_settings_route():
    return jsonify(showcase_service.get_settings_map()), 200


@vitrine_bp.post("/api/vitrine/contact")
def contact_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ContactSubmission, payload=payload, policy=CONTACT_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    submission = showcase_service.create_contact_submission(patch)
    return jsonify(submission.to_dict()), 201


@vitrine_bp.get("/sitemap.xml")
def sitemap_route():
    base_url = _base_url()
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]

    def _url(loc: str, changefreq: str, priority: str) -> None:
        lines.append("  <url>")
        lines.append(f"    <loc>{escape(base_url + loc)}</loc>")
        lines.append(f"    <changefreq>{changefreq}</changefreq>")
        lines.append(f"    <priority>{priority}</priority>")
        lines.append("  </url>")

    for loc, changefreq, priority in STATIC_PAGES:
        _url(loc, changefreq, priority)
    for product in showcase_service.list_showcase_products(active_only=True):
        _url(f"/produto/{product.id}", "monthly", "0.8")

    lines.append("</urlset>")
    return Response("\n".join(lines) + "\n", mimetype="application/xml")


@vitrine_bp.get("/robots.txt")
def robots_route():
    txt = "\n".join([
        "User-agent: *",
        "Allow: /",
        "Allow: /produtos",
        "Allow: /sobre",
        "Allow: /contato",
        "Allow: /produto/",
        "Disallow: /api/",
        "Disallow: /login",
        "Disallow: /portal/",
        "Disallow: /painel/",
        "",
        f"Sitemap: {_base_url()}/sitemap.xml",
        "",
    ])
    return Response(txt, mimetype="text/plain")
