from datetime import datetime, timezone

from flask import Blueprint, abort, current_app, jsonify

from config.supabase_schema import ORDER_STATUSES
from kyctrust.api.helpers import (
    ROUTE_METHODS,
    build_patch,
    create_api_handler,
    filter_by_args,
    handle_delete,
    handle_get,
    handle_post,
    handle_put,
    request_body,
    with_cors,
    with_error_handler,
    with_method_guard,
)
from kyctrust.db import fetch_active_section

api_bp = Blueprint('api', __name__, url_prefix='/api')

PLATFORM_NAME = 'KYCtrust Platform API'
PLATFORM_VERSION = '2.0.0'

CRUD_METHODS = ('GET', 'POST', 'PUT', 'DELETE')

# (resource, path, registered methods)
RESOURCE_ENDPOINTS = (
    ('services', '/services', CRUD_METHODS),
    ('orders', '/orders', CRUD_METHODS),
    ('payment_methods', '/payment-methods', CRUD_METHODS),
    ('site_settings', '/site-settings', ('GET', 'POST', 'PUT')),
    ('page_templates', '/page-templates', CRUD_METHODS),
    ('themes', '/themes', CRUD_METHODS),
)

LANDING = 'landing_customization'

_PLACEHOLDER_MARKERS = ('your-project', 'your-anon-key')


def _order_body() -> dict:
    body = build_patch('orders', request_body())
    if 'status' in body:
        status = str(body.get('status') or '').strip().lower()
        if status not in ORDER_STATUSES:
            abort(400, description='Invalid status selection.')
        body['status'] = status
    return body


_BODY_LOADERS = {
    'orders': _order_body,
}


def _resource_handlers(resource: str, methods) -> dict:
    def load_body():
        loader = _BODY_LOADERS.get(resource)
        if loader is not None:
            return loader()
        return build_patch(resource, request_body())

    available = {
        'GET': lambda: handle_get(resource, filter_by_args(resource)),
        'POST': lambda: handle_post(resource, load_body()),
        'PUT': lambda: handle_put(resource, load_body=load_body),
        'DELETE': lambda: handle_delete(resource),
    }
    return {method: available[method] for method in methods}


for _resource, _path, _methods in RESOURCE_ENDPOINTS:
    api_bp.add_url_rule(
        _path,
        endpoint=_resource,
        view_func=create_api_handler(_resource_handlers(_resource, _methods)),
        methods=ROUTE_METHODS,
    )


def _landing_post_or_put():
    """Update the active row for a section, or create it when none exists.

    The lookup and the write are separate backend calls, so two concurrent
    requests for a new section can both create an active row.
    """

    body = request_body()
    section_name = body.get('section_name')
    content = body.get('content')

    if not section_name or not content:
        return jsonify({'error': 'Section name and content are required'}), 400

    existing, error = fetch_active_section(section_name)
    if error:
        current_app.logger.error(
            'Failed to look up landing section %s: %s', section_name, error
        )
        return jsonify({'error': f'Failed to fetch {LANDING}'}), 500

    if existing:
        return handle_put(LANDING, {'content': content}, row_id=existing.get('id'))
    return handle_post(
        LANDING,
        {'section_name': section_name, 'content': content, 'active': True},
    )


api_bp.add_url_rule(
    '/landing-customization',
    endpoint=LANDING,
    view_func=create_api_handler(
        {
            'GET': lambda: handle_get(LANDING, filter_by_args(LANDING)),
            'POST': _landing_post_or_put,
            'PUT': _landing_post_or_put,
            'DELETE': lambda: handle_delete(LANDING),
        }
    ),
    methods=ROUTE_METHODS,
)


@api_bp.route('', methods=ROUTE_METHODS)
@with_cors
@with_error_handler
@with_method_guard(['GET'])
def index():
    return jsonify({
        'message': PLATFORM_NAME,
        'version': PLATFORM_VERSION,
        'status': 'active',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'endpoints': {
            'services': '/api/services',
            'orders': '/api/orders',
            'paymentMethods': '/api/payment-methods',
            'siteSettings': '/api/site-settings',
            'pageTemplates': '/api/page-templates',
            'themes': '/api/themes',
            'landingCustomization': '/api/landing-customization',
            'supabaseConfig': '/api/get-supabase-config',
        },
        'features': {
            'visualPageBuilder': True,
            'themesSystem': True,
            'adminPanel': True,
            'apiIntegration': True,
            'supabaseIntegration': True,
            'responsiveDesign': True,
        },
    })


@api_bp.route('/get-supabase-config', methods=ROUTE_METHODS)
@with_cors
@with_error_handler
@with_method_guard(['GET'])
def supabase_config():
    supabase_url = current_app.config.get('SUPABASE_URL')
    anon_key = current_app.config.get('SUPABASE_ANON_KEY')

    if not supabase_url or not anon_key:
        return jsonify({
            'configured': False,
            'message': 'Supabase not configured - using local storage fallback',
        })

    url_placeholder = _PLACEHOLDER_MARKERS[0] in supabase_url
    if url_placeholder or _PLACEHOLDER_MARKERS[1] in anon_key:
        return jsonify({
            'configured': False,
            'message': 'Supabase credentials are placeholder values',
            'supabaseUrl': None if url_placeholder else supabase_url,
            'needsConfiguration': True,
        })

    return jsonify({
        'configured': True,
        'supabaseUrl': supabase_url,
        'message': 'Supabase is properly configured',
    })
