"""
Main Input Handler Module.

This module provides the InputHandler class that loads upstream recognizer
output from disk and turns it into a DocumentInput for the engine.

Supported inputs:
    - .json: OCRResult format ({"words": [...], "image_width", "image_height",
      "text"}) or a plain {"text": "..."} object; an optional "document_id"
      names the document record
    - .txt: flat recognized text (UTF-8)

Usage:
    from src.input_handler import InputHandler

    handler = InputHandler()
    result = handler.load("scan-0042.json")

    # Process batch
    results = handler.load_batch("./ocr/")

Classes:
    InputHandler: Main class for file input handling
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union, List, Optional

from config import get_config
from src.extraction import DocumentInput
from src.ocr_engine import OCRResult
from src.utils.logger import get_logger
from src.utils.helpers import get_file_extension
from src.utils.exceptions import (
    InputError,
    UnsupportedFileTypeError,
    DocumentNotFoundError,
    CorruptedFileError,
    ValidationError,
)

logger = get_logger(__name__)


@dataclass
class InputResult:
    """
    Result of loading one input file.

    Attributes:
        filepath: Original file path
        filename: Original filename
        file_type: 'json' or 'text'
        document: Loaded document, None on failure
        success: Whether loading was successful
        error: Error message if loading failed
    """
    filepath: str
    filename: str
    file_type: str
    document: Optional[DocumentInput] = None
    success: bool = True
    error: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"InputResult(filename='{self.filename}', "
            f"type='{self.file_type}', "
            f"success={self.success})"
        )


class InputHandler:
    """
    Loads upstream OCR output files.

    Example:
        >>> handler = InputHandler()
        >>> document = handler.read("scan-0042.json")
        >>> document.is_box_aware
        True
    """

    JSON_EXTENSIONS = {'.json'}
    TEXT_EXTENSIONS = {'.txt'}

    def __init__(self) -> None:
        self.supported_extensions = {
            ext.lower() for ext in get_config(
                "input.supported_extensions",
                sorted(self.JSON_EXTENSIONS | self.TEXT_EXTENSIONS),
            )
        }
        logger.debug(f"InputHandler initialized with extensions: {self.supported_extensions}")

    def detect_file_type(self, filepath: Union[str, Path]) -> str:
        """
        Detect the type of input file.

        Raises:
            UnsupportedFileTypeError: If file type is not supported.
        """
        extension = get_file_extension(filepath)
        if extension in self.supported_extensions:
            if extension in self.JSON_EXTENSIONS:
                return 'json'
            if extension in self.TEXT_EXTENSIONS:
                return 'text'
        raise UnsupportedFileTypeError(extension, list(self.supported_extensions))

    def validate_file(self, filepath: Union[str, Path]) -> Path:
        """
        Validate that a file exists and is accessible.

        Raises:
            DocumentNotFoundError: If file doesn't exist.
            UnsupportedFileTypeError: If file type is not supported.
            CorruptedFileError: If the file is empty.
        """
        path = Path(filepath)

        if not path.exists():
            raise DocumentNotFoundError(str(filepath))
        if not path.is_file():
            raise InputError(f"Path is not a file: {filepath}")

        self.detect_file_type(path)

        if path.stat().st_size == 0:
            raise CorruptedFileError(str(filepath), "File is empty")

        return path

    def read(self, filepath: Union[str, Path], document_id: Optional[str] = None) -> DocumentInput:
        """
        Load one file, raising on failure.

        Args:
            filepath: Path to the OCR output.
            document_id: Document record id; defaults to the file's
                         "document_id" key, then to the file stem.

        Raises:
            InputError: If the file is missing, unsupported or unreadable.
        """
        path = self.validate_file(filepath)
        file_type = self.detect_file_type(path)

        try:
            content = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptedFileError(str(filepath), str(e))

        if file_type == 'text':
            return DocumentInput(text=content, document_id=document_id or path.stem)

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise CorruptedFileError(str(filepath), f"Invalid JSON: {e}")

        if not isinstance(data, dict):
            raise CorruptedFileError(str(filepath), "Expected a JSON object")

        document_id = document_id or data.get('document_id') or path.stem

        if not data.get('words'):
            return DocumentInput(text=data.get('text') or "", document_id=document_id)

        try:
            ocr_result = OCRResult.from_dict(data)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            raise CorruptedFileError(str(filepath), f"Malformed OCR tokens: {e}")

        return DocumentInput(
            text=data.get('text') or "",
            ocr_result=ocr_result,
            document_id=document_id,
        )

    def load(self, filepath: Union[str, Path]) -> InputResult:
        """
        Load one file, reporting failure in the result instead of raising.

        Example:
            >>> result = handler.load("scan-0042.json")
            >>> if result.success:
            ...     engine_input = result.document
        """
        filepath = str(filepath)
        filename = Path(filepath).name
        logger.info(f"Loading file: {filepath}")

        try:
            document = self.read(filepath)
        except InputError as e:
            logger.error(f"Input error for {filepath}: {e}")
            return InputResult(
                filepath=filepath,
                filename=filename,
                file_type='unknown',
                success=False,
                error=str(e),
            )

        file_type = self.detect_file_type(filepath)
        logger.info(
            f"Successfully loaded: {filename} "
            f"({'token boxes' if document.is_box_aware else 'flat text'})"
        )
        return InputResult(
            filepath=filepath,
            filename=filename,
            file_type=file_type,
            document=document,
        )

    def load_batch(
        self,
        directory: Union[str, Path],
        recursive: bool = False
    ) -> List[InputResult]:
        """
        Load all supported files in a directory.

        Raises:
            DocumentNotFoundError: If the directory does not exist.
        """
        directory = Path(directory)

        if not directory.exists():
            raise DocumentNotFoundError(str(directory))
        if not directory.is_dir():
            raise InputError(f"Path is not a directory: {directory}")

        pattern = "**/*" if recursive else "*"
        files = sorted(
            path for path in directory.glob(pattern)
            if path.is_file() and get_file_extension(path) in self.supported_extensions
        )

        logger.info(f"Found {len(files)} files to process in {directory}")
        results = [self.load(path) for path in files]

        successful = sum(1 for r in results if r.success)
        logger.info(f"Batch loading complete: {successful} successful, {len(results) - successful} failed")
        return results
