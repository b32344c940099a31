from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.lifecycle import ResourceRegistry
from assistable.assist.content import (
    Message,
    ContentBlock,
    TextBlock,
    ImageFileBlock,
    FilePathAnnotation,
)
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple
import os
import shutil
import logging

LOGGER = logging.getLogger(__name__)

IMAGES_DIR = "images"
DOWNLOAD_FILES_DIR = "download_files"


@dataclass(frozen=True)
class MaterializedFile:
    file_id: str
    file_name: str
    file_type: str
    path: str
    reused: bool = False
    cleanup_error: Optional[str] = None


@dataclass(frozen=True)
class MaterializationFailure:
    file_id: str
    file_name: str
    error: str


@dataclass
class ReconciledOutput:
    texts: List[str] = field(default_factory=list)
    files: List[MaterializedFile] = field(default_factory=list)
    failures: List[MaterializationFailure] = field(default_factory=list)
    unhandled: List[str] = field(default_factory=list)
    cleanup_warnings: List[str] = field(default_factory=list)
    parts: List[str] = field(default_factory=list)


def ensure_directory(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def rewrite_annotations(value: str, replacements: List[Tuple[FilePathAnnotation, str]]) -> str:
    """
    Replaces each annotation's [start_index, end_index) span of value with its
    new text. Spans are applied from the highest start offset down so every
    replacement lands on its original offsets. Spans outside the value or
    overlapping an already applied span are left untouched.
    """
    ordered = sorted(replacements, key=lambda item: item[0].start_index, reverse=True)
    limit = len(value)
    for annotation, new_text in ordered:
        start, end = annotation.start_index, annotation.end_index
        if start < 0 or start > end or end > len(value):
            LOGGER.warning(f"Annotation [{start}, {end}) outside text of length {len(value)}, not rewritten")
            continue
        if end > limit:
            LOGGER.warning(f"Annotation [{start}, {end}) overlaps a rewritten span, not rewritten")
            continue
        value = value[:start] + new_text + value[end:]
        limit = start
    return value


def annotation_file_name(annotation: FilePathAnnotation) -> str:
    file_name = annotation.file_name
    if file_name in ("", ".", ".."):
        return annotation.file_id
    return file_name


class Materializer:

    def __init__(self, gateway: ResourceGateway, output_dir: str):
        self.gateway = gateway
        self.output_dir = output_dir
        self.materialized: Dict[str, MaterializedFile] = {}

    def local_path(self, file_type: str, file_name: str) -> str:
        return os.path.join(self.output_dir, file_type, file_name)

    def reuse(self, previous: MaterializedFile, file_name: str, file_type: str) -> MaterializedFile:
        file_path = self.local_path(file_type, file_name)
        if file_path == previous.path:
            return previous
        ensure_directory(os.path.join(self.output_dir, file_type))
        shutil.copyfile(previous.path, file_path)
        LOGGER.info(f"File {previous.file_id} copied from '{previous.path}' to '{file_path}'")
        return MaterializedFile(file_id=previous.file_id, file_name=file_name, file_type=file_type,
                                path=file_path, reused=True)

    def materialize(self, file_id: str, file_name: str, file_type: str,
                    registry: ResourceRegistry) -> MaterializedFile:
        """
        Fetches the remote file, writes it to <output_dir>/<file_type>/<file_name>
        and then releases the remote copy. An id seen before is served from
        the local copy; a released id is never fetched again.
        """
        previous = self.materialized.get(file_id)
        if previous is not None:
            return self.reuse(previous, file_name, file_type)
        if registry.is_released(file_id):
            raise RuntimeError(f"File {file_id} was already released and has no local copy")

        registry.track_output(file_id)
        data = self.gateway.get_file_content(file_id)
        ensure_directory(os.path.join(self.output_dir, file_type))
        file_path = self.local_path(file_type, file_name)
        with open(file_path, "wb") as file:
            file.write(data)
        LOGGER.info(f"File {file_id} saved as '{file_path}' ({len(data)} bytes)")
        materialized = MaterializedFile(file_id=file_id, file_name=file_name, file_type=file_type, path=file_path)
        self.materialized[file_id] = materialized

        try:
            registry.release_file(self.gateway, file_id)
        except Exception as e:
            LOGGER.warning(f"File {file_id} saved but its remote copy was not deleted: {e}")
            materialized = replace(materialized, cleanup_error=str(e))
        return materialized


class OutputReconciler:

    def __init__(self, gateway: ResourceGateway, output_dir: str,
                 materializer: Optional[Materializer] = None):
        self.gateway = gateway
        self.output_dir = output_dir
        self.materializer = materializer or Materializer(gateway, output_dir)

    def _materialize(self, output: ReconciledOutput, registry: ResourceRegistry,
                     file_id: str, file_name: str, file_type: str) -> Optional[MaterializedFile]:
        try:
            materialized = self.materializer.materialize(file_id, file_name, file_type, registry)
        except Exception as e:
            LOGGER.error(f"Error download file {file_id} as {file_name}: {e}", exc_info=True)
            output.failures.append(MaterializationFailure(file_id=file_id, file_name=file_name, error=str(e)))
            output.parts.append(f"Error download file: {e}")
            return None
        if any(f.file_id == file_id and f.path == materialized.path for f in output.files):
            return materialized
        output.files.append(materialized)
        output.parts.append(f"File saved as '{file_type}/{file_name}'")
        if materialized.cleanup_error is not None:
            output.cleanup_warnings.append(file_id)
            output.parts.append(f"Warning: remote file {file_id} was not deleted: {materialized.cleanup_error}")
        return materialized

    def reconcile_text(self, block: TextBlock, output: ReconciledOutput, registry: ResourceRegistry) -> str:
        replacements = []
        for annotation in sorted(block.annotations, key=lambda a: a.start_index, reverse=True):
            if annotation.type != "file_path":
                continue
            file_name = annotation_file_name(annotation)
            self._materialize(output, registry, annotation.file_id, file_name, DOWNLOAD_FILES_DIR)
            new_path = os.path.join(self.output_dir, DOWNLOAD_FILES_DIR, file_name)
            replacements.append((annotation, new_path))
        text = rewrite_annotations(block.value, replacements)
        output.texts.append(text)
        output.parts.append(text)
        return text

    def reconcile_image(self, block: ImageFileBlock, output: ReconciledOutput, registry: ResourceRegistry) -> None:
        output.parts.append(f"[Image file received: {block.file_id}]")
        self._materialize(output, registry, block.file_id, f"{block.file_id}.png", IMAGES_DIR)

    def reconcile_block(self, block: ContentBlock, output: ReconciledOutput, registry: ResourceRegistry) -> None:
        match block:
            case TextBlock():
                self.reconcile_text(block, output, registry)
            case ImageFileBlock():
                self.reconcile_image(block, output, registry)
            case _:
                LOGGER.warning(f"Unhandled content type: {block.type}")
                output.unhandled.append(block.type)
                output.parts.append(f"Unhandled content type: {block.type}")

    def reconcile(self, message: Message, registry: ResourceRegistry) -> ReconciledOutput:
        output = ReconciledOutput()
        for block in message.content:
            try:
                self.reconcile_block(block, output, registry)
            except Exception as e:
                LOGGER.error(f"Error processing {block.type} block of message {message.message_id}: {e}", exc_info=True)
                output.parts.append(f"Error processing {block.type} block: {e}")
        LOGGER.info(f"Reconciled message {message.message_id}: {len(output.texts)} texts, "
                    f"{len(output.files)} files, {len(output.failures)} failures")
        return output
