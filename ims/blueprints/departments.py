from flask import Blueprint, jsonify
from ims.departments import get_catalog

departments_bp = Blueprint('departments', __name__)


@departments_bp.route('')
def list_departments():
    return jsonify(get_catalog().list_departments())


@departments_bp.route('/<code>/subdepartments')
def list_subdepartments(code):
    return jsonify(get_catalog().list_subdepartments(code))
