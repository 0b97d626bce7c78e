"""
此模块定义了媒体文件 (Media) 相关的 API 端点，全部需要登录。

主要功能:
- 媒体分页列表，支持按类型 (image/video/audio/document)、上传者和关键字过滤。
- 媒体统计 (admin / editor)。
- 上传单个文件 (/upload，字段名 file) 或多个文件 (/upload-multiple，字段名 files)，
  仅 admin / editor / author 可用。
- 修改替代文本和说明、删除媒体 (本人或 admin)；?permanent=true 时同时删除磁盘文件。

依赖服务: services.media_service, utils.file_storage
使用 Flask 蓝图: media_bp

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from flask import Blueprint, request, jsonify, current_app, g

from cmsapp.services import media_service
from cmsapp.services.authorization import enforce
from cmsapp.services.query_engine import list_media
from cmsapp.utils.auth_utils import permission_required
from cmsapp.utils.errors import ValidationFailed
from cmsapp.utils.validators import parse_bool, parse_positive_int

media_bp = Blueprint('media', __name__)


@media_bp.route('/', methods=['GET'])
@permission_required('media:list')
def get_media_list():
    args = request.args
    filters = {
        'type': args.get('type'),
        'uploaded_by': parse_positive_int(args.get('uploaded_by'), 'uploaded_by', None),
        'search': args.get('search'),
    }
    result = list_media(
        filters,
        sort=args.get('sort'),
        page=parse_positive_int(args.get('page'), 'page', 1),
        page_size=parse_positive_int(args.get('limit'), 'limit', None),
    )
    return jsonify({
        'success': True,
        'data': [media.to_dict() for media in result.items],
        'pagination': result.pagination()
    }), 200


@media_bp.route('/stats', methods=['GET'])
@permission_required('media:stats')
def get_media_stats():
    return jsonify({'success': True, 'data': media_service.media_stats()}), 200


@media_bp.route('/<int:media_id>', methods=['GET'])
@permission_required('media:view')
def get_media(media_id):
    media = media_service.get_media(media_id)
    return jsonify({'success': True, 'data': media.to_dict()}), 200


@media_bp.route('/upload', methods=['POST'])
@permission_required('media:upload')
def upload_file():
    """上传单个文件"""
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ValidationFailed({'file': '没有上传文件'})
    items = media_service.upload_files(
        [file], g.current_user,
        alt=request.form.get('alt', ''),
        caption=request.form.get('caption', ''),
    )
    return jsonify({
        'success': True,
        'message': '文件上传成功',
        'data': items[0].to_dict()
    }), 201


@media_bp.route('/upload-multiple', methods=['POST'])
@permission_required('media:upload')
def upload_multiple_files():
    """上传多个文件，全部校验通过才会入库"""
    files = [file for file in request.files.getlist('files') if file and file.filename]
    if not files:
        raise ValidationFailed({'files': '没有上传文件'})
    max_files = current_app.config.get('MAX_FILES_PER_REQUEST', 10)
    if len(files) > max_files:
        raise ValidationFailed({'files': f'一次最多上传 {max_files} 个文件'})

    items = media_service.upload_files(files, g.current_user)
    return jsonify({
        'success': True,
        'message': f'成功上传 {len(items)} 个文件',
        'data': [media.to_dict() for media in items]
    }), 201


@media_bp.route('/<int:media_id>', methods=['PUT'])
@permission_required('media:update')
def update_media(media_id):
    media = media_service.get_media(media_id)
    enforce(g.current_user, 'media:update', media)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed({'body': '请求体必须是 JSON 对象'})
    media = media_service.update_media(media, data)
    return jsonify({
        'success': True,
        'message': '媒体信息更新成功',
        'data': media.to_dict()
    }), 200


@media_bp.route('/<int:media_id>', methods=['DELETE'])
@permission_required('media:delete')
def delete_media(media_id):
    permanent = parse_bool(request.args.get('permanent'), False)
    # 已软删除的记录仍允许永久删除
    media = media_service.get_media(media_id, include_inactive=permanent)
    enforce(g.current_user, 'media:delete', media)
    result = media_service.delete_media(media, permanent=permanent)
    return jsonify({
        'success': True,
        'message': '媒体已永久删除' if permanent else '媒体已删除',
        'data': result
    }), 200
