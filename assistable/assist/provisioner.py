from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.lifecycle import ResourceRegistry
from assistable.assist.content import UploadedFile, make_attachment
from dataclasses import dataclass, field
from typing import List, Dict, Optional
from magika import Magika
import hashlib
import io
import os
import logging

LOGGER = logging.getLogger(__name__)

SEED_INSTRUCTIONS = (
    "Extract the uploaded ZIP files ({archives}) into {upload_dir}. "
    "They contain the files to analyze and the font {font_name}. "
    "Analyze the extracted files following the user's instructions. "
    "When generating graphs or chart images from the data, use {font_name} "
    "for titles, axis labels, legends and any other text."
)


class ProvisioningError(Exception):
    """Raised when the session cannot get a usable thread."""


@dataclass
class ProvisionedSession:
    thread_id: str
    files: List[UploadedFile]
    attachments: List[Dict]
    registry: ResourceRegistry
    seed_message: str = ""
    font_file_id: Optional[str] = None
    file_ids: List[str] = field(init=False)

    def __post_init__(self):
        self.file_ids = [f.file_id for f in self.files]


class AttachmentProvisioner:

    def __init__(self, gateway: ResourceGateway, font_file_id: Optional[str] = None,
                 font_name: str = "NotoSansJP.ttf", upload_dir: str = "/mnt/data/upload_files"):
        self.gateway = gateway
        self.font_file_id = font_file_id
        self.font_name = font_name
        self.upload_dir = upload_dir

    def read_file(self, file_path: str) -> bytes:
        try:
            with open(file_path, "rb") as file:
                return file.read()
        except OSError as e:
            LOGGER.error(f"Error reading file {file_path}: {e}")
            raise ProvisioningError(f"Cannot read input file '{file_path}': {e}") from e

    def upload(self, file_path: str, registry: ResourceRegistry) -> UploadedFile:
        content = self.read_file(file_path)
        file_hash = hashlib.sha256(content).hexdigest()
        try:
            mime_type = Magika().identify_bytes(content).output.mime_type
        except Exception as e:
            LOGGER.error(f"Error detecting type of {file_path}: {e}", exc_info=True)
            raise ProvisioningError(f"Cannot detect type of '{file_path}': {e}") from e

        try:
            file_id = self.gateway.create_file_resource(os.path.basename(file_path), io.BytesIO(content))
        except Exception as e:
            raise ProvisioningError(f"Upload of '{file_path}' failed: {e}") from e
        registry.track_input(file_id)

        LOGGER.info(f"Uploaded {file_path} ({mime_type}, {len(content)} bytes) as {file_id}")
        return UploadedFile(file_id=file_id, file_path=file_path, file_hash=file_hash,
                            mime_type=mime_type, file_size=len(content))

    def build_attachments(self, files: List[UploadedFile]) -> List[Dict]:
        file_ids = []
        if self.font_file_id:
            file_ids.append(self.font_file_id)
        for uploaded in files:
            if uploaded.file_id not in file_ids:
                file_ids.append(uploaded.file_id)
        return [make_attachment(file_id) for file_id in file_ids]

    def build_seed_message(self, files: List[UploadedFile]) -> str:
        archives = [os.path.basename(f.file_path) for f in files]
        return SEED_INSTRUCTIONS.format(
            archives=", ".join(archives),
            upload_dir=self.upload_dir,
            font_name=self.font_name,
        )

    def provision(self, file_paths: List[str], registry: Optional[ResourceRegistry] = None) -> ProvisionedSession:
        """
        Uploads every artifact and opens one thread referencing all of them.
        Ids created before a failure stay in the registry so shutdown can
        remove them.
        """
        if registry is None:
            registry = ResourceRegistry()
        if not file_paths:
            raise ProvisioningError("No input files configured")

        files = [self.upload(file_path, registry) for file_path in file_paths]
        attachments = self.build_attachments(files)
        seed_message = self.build_seed_message(files)

        try:
            thread_id = self.gateway.create_thread_resource(seed_message, attachments)
        except Exception as e:
            raise ProvisioningError(f"Thread creation failed: {e}") from e
        registry.track_thread(thread_id)
        LOGGER.info(f"Thread {thread_id} created with {len(attachments)} attachments")

        return ProvisionedSession(thread_id=thread_id, files=files, attachments=attachments,
                                  registry=registry, seed_message=seed_message,
                                  font_file_id=self.font_file_id)
