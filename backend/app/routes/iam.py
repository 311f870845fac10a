from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required
from app.services.policy import authenticate, builtin_admin_profile, claims_for, current_user_id, fresh_subject
from app.services.managers import user_json
from app.services.permissions import (
    has_permission,
    is_action_visible_but_disabled,
    is_module_visible,
    visible_sections,
)
from app.utils.validation import require_fields

iam_bp = Blueprint('iam', __name__)


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    if not data.get('email') or not data.get('password'):
        abort(400, description='Please provide an email and password')
    result = authenticate(data['email'], data['password'])
    if result is None:
        abort(401, description='Invalid email or password')
    identity, subject, user = result
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=identity, additional_claims=claims_for(subject))
    profile = user_json(user) if user is not None else builtin_admin_profile()
    return {'access_token': token, 'user': profile}


@iam_bp.get('/auth/me')
@jwt_required()
def me():
    subject, user = fresh_subject()
    if user is not None:
        return user_json(user)
    if current_user_id() is not None:
        # token outlived its user
        abort(404, description='User not found')
    if subject.is_admin:
        return builtin_admin_profile()
    abort(404, description='User not found')


@iam_bp.get('/auth/navigation')
@jwt_required()
def navigation():
    subject, _ = fresh_subject()
    return {'role': subject.role, 'sections': visible_sections(subject)}


@iam_bp.get('/auth/check')
@jwt_required()
def check_permission():
    args = request.args.to_dict()
    require_fields(args, ['module'])
    module = args['module']
    action = args.get('action')
    subject, _ = fresh_subject()
    body = {'module': module, 'visible': is_module_visible(subject, module)}
    if action:
        body.update({
            'action': action,
            'allowed': has_permission(subject, module, action),
            'disabled': is_action_visible_but_disabled(subject, module, action),
        })
    return body
