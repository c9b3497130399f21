# utils/storage.py
import logging
import os
import time
from io import BytesIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class UploadRejected(Exception):
    pass


def measure_upload(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def check_upload(file):
    """Size and MIME checks, done before anything is written."""
    cfg = current_app.config
    if measure_upload(file) > cfg['UPLOAD_MAX_BYTES']:
        limit_mb = cfg['UPLOAD_MAX_BYTES'] // (1024 * 1024)
        raise UploadRejected(f"File is too large (max {limit_mb}MB).")
    if file.mimetype not in cfg['ALLOWED_UPLOAD_MIME_TYPES']:
        raise UploadRejected("Invalid file type (only JPEG, PNG, SVG allowed).")


def build_upload_name(filename):
    base = secure_filename((filename or '').replace(' ', '_')) or 'upload'
    return f"{int(time.time() * 1000)}-{base}"


def _s3_client():
    cfg = current_app.config
    return boto3.client(
        's3',
        aws_access_key_id=cfg['AWS_ACCESS_KEY_ID'],
        aws_secret_access_key=cfg['AWS_SECRET_ACCESS_KEY'],
        region_name=cfg['AWS_S3_REGION']
    )


def upload_to_s3(file, object_name):
    cfg = current_app.config
    bucket = cfg['AWS_S3_BUCKET']
    try:
        _s3_client().upload_fileobj(
            file.stream, bucket, object_name,
            ExtraArgs={'ContentType': file.mimetype},
        )
    except (BotoCoreError, ClientError):
        logger.exception("S3 upload failed for %s", object_name)
        raise
    return f"https://{bucket}.s3.{cfg['AWS_S3_REGION']}.amazonaws.com/{object_name}"


def save_locally(file, object_name):
    cfg = current_app.config
    os.makedirs(cfg['UPLOAD_FOLDER'], exist_ok=True)
    file.save(os.path.join(cfg['UPLOAD_FOLDER'], object_name))
    return f"{cfg['UPLOAD_URL_PREFIX'].rstrip('/')}/{object_name}"


def store_upload(file):
    """Validate and store an uploaded file, returning its public URL."""
    check_upload(file)
    object_name = build_upload_name(file.filename)
    if current_app.config.get('AWS_S3_BUCKET'):
        return upload_to_s3(file, f"uploads/{object_name}")
    return save_locally(file, object_name)


def resolve_local_upload(url):
    """Map a URL returned by :func:`save_locally` back to a file path."""
    if not url:
        return None
    prefix = current_app.config['UPLOAD_URL_PREFIX'].rstrip('/') + '/'
    if not url.startswith(prefix):
        return None
    name = secure_filename(url[len(prefix):])
    if not name:
        return None
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], name)
    return path if os.path.exists(path) else None


def s3_object_key(url):
    """Object key for a URL returned by :func:`upload_to_s3`, else ``None``."""
    cfg = current_app.config
    bucket = cfg.get('AWS_S3_BUCKET')
    if not url or not bucket:
        return None
    prefix = f"https://{bucket}.s3.{cfg['AWS_S3_REGION']}.amazonaws.com/"
    if not url.startswith(prefix) or len(url) == len(prefix):
        return None
    return url[len(prefix):]


def open_upload(url):
    """Return a local path or an in-memory file for a stored upload.

    ``None`` when the URL is not one of ours or the object cannot be read.
    """
    path = resolve_local_upload(url)
    if path:
        return path
    key = s3_object_key(url)
    if key is None:
        return None
    try:
        obj = _s3_client().get_object(Bucket=current_app.config['AWS_S3_BUCKET'], Key=key)
    except (BotoCoreError, ClientError):
        logger.warning("Could not fetch %s from S3", key, exc_info=True)
        return None
    return BytesIO(obj['Body'].read())
