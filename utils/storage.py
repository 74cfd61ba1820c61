import json
import os
import tempfile
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from utils.logger import get_logger

logger = get_logger("storage")


class StorageManager:
    """
    JSON 문서용 키-값 저장소.

    R2 자격 증명(R2_ACCOUNT_ID / R2_ACCESS_KEY_ID / R2_SECRET_ACCESS_KEY / R2_BUCKET_NAME)이
    모두 있으면 Cloudflare R2(S3 호환)에, 없으면 로컬 디렉토리에 <key>.json 으로 저장합니다.
    """

    def __init__(self, data_dir: str = "data", s3_client=None, bucket_name: Optional[str] = None):
        self.data_dir = data_dir
        self.account_id = os.getenv("R2_ACCOUNT_ID")
        self.access_key = os.getenv("R2_ACCESS_KEY_ID")
        self.secret_key = os.getenv("R2_SECRET_ACCESS_KEY")
        self.bucket_name = bucket_name or os.getenv("R2_BUCKET_NAME")
        self.prefix = os.getenv("R2_PREFIX", "directorai/")

        self.s3_client = s3_client

        if self.s3_client is None and all([self.account_id, self.access_key, self.secret_key, self.bucket_name]):
            self.s3_client = boto3.client(
                service_name='s3',
                endpoint_url=f'https://{self.account_id}.r2.cloudflarestorage.com',
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name='auto'  # Must be 'auto' for Cloudflare R2
            )
            logger.info(f"Initialized R2 client for bucket: {self.bucket_name}")

        if self.s3_client is None:
            os.makedirs(self.data_dir, exist_ok=True)
            logger.debug(f"Using local storage: {os.path.abspath(self.data_dir)}")

    @property
    def backend(self) -> str:
        return "r2" if self.s3_client else "local"

    def _local_path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def get(self, key: str) -> Optional[Any]:
        """
        키에 저장된 JSON 문서를 읽습니다.

        Returns:
            디코딩된 값 또는 None (키 없음)
        """
        if self.s3_client:
            try:
                response = self.s3_client.get_object(Bucket=self.bucket_name, Key=self._object_key(key))
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                    return None
                raise
            return json.loads(response['Body'].read().decode('utf-8'))

        path = self._local_path(key)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def put(self, key: str, value: Any) -> None:
        """키에 JSON 문서를 통째로 덮어씁니다."""
        payload = json.dumps(value, ensure_ascii=False, indent=2)

        if self.s3_client:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=self._object_key(key),
                Body=payload.encode('utf-8'),
                ContentType='application/json',
            )
            return

        # 임시 파일에 쓴 뒤 교체 (부분 기록 방지)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, self._local_path(key))
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def delete(self, key: str) -> None:
        if self.s3_client:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._object_key(key))
            return
        path = self._local_path(key)
        if os.path.exists(path):
            os.remove(path)
