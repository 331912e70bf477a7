"""
文件服务模块
手稿读取（多编码回退）与分析结果的保存
"""

import logging
from pathlib import Path
from typing import Any

from config import ProcessingConfig, get_processing_config
from exceptions import EncodingError, FileValidationError
from utils import atomic_write_json, decode_text, safe_read_text
from validators import validate_encoding_list, validate_file_path, validate_output_dir

logger = logging.getLogger(__name__)

DEFAULT_ENCODINGS = ["utf-8-sig", "cp1251", "latin1"]


class FileService:
    """文件服务类"""

    def __init__(self, processing_config: ProcessingConfig | None = None):
        self.processing_config = processing_config or get_processing_config()
        self.encodings = self._validate_encodings(self.processing_config.encodings)

    @staticmethod
    def _validate_encodings(encodings: list) -> list[str]:
        """验证编码列表，无效时使用默认编码"""
        try:
            return validate_encoding_list(encodings)
        except FileValidationError as e:
            logger.error(f"编码配置无效: {e}，使用默认编码")
            return list(DEFAULT_ENCODINGS)

    def read_text_file(self, file_path: str | Path) -> tuple[str, str]:
        """
        读取手稿文件，按配置的编码顺序依次尝试

        Returns:
            Tuple[str, str]: (文件内容, 实际使用的编码)

        Raises:
            FileValidationError: 路径或格式不合法
            EncodingError: 所有编码都失败
        """
        file_path = validate_file_path(file_path, max_size_mb=100)

        try:
            content, actual_encoding = safe_read_text(file_path, self.encodings)
        except UnicodeDecodeError as e:
            raise EncodingError(
                f"无法读取文件 {file_path}，已尝试编码: {', '.join(self.encodings)}",
                encodings=self.encodings,
            ) from e

        logger.info(f"成功读取文件: {file_path}，使用编码: {actual_encoding}")
        return content, actual_encoding

    def decode_upload(self, raw: bytes, filename: str = "upload") -> tuple[str, str]:
        """解码上传的文件内容"""
        try:
            return decode_text(raw, self.encodings)
        except UnicodeDecodeError as e:
            raise EncodingError(
                f"无法解码上传文件 {filename}，已尝试编码: {', '.join(self.encodings)}",
                encodings=self.encodings,
            ) from e

    def write_json_file(self, file_path: str | Path, data: Any, indent: int = 2) -> None:
        """原子性写入JSON文件"""
        atomic_write_json(file_path, data, indent=indent)
        logger.info(f"已保存: {file_path}")

    def ensure_output_directory(self, subdirectory: str | None = None) -> Path:
        """确保输出目录存在"""
        output_dir = self.processing_config.output_dir
        if subdirectory:
            output_dir = str(Path(output_dir) / subdirectory)
        return validate_output_dir(output_dir)
