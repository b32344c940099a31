from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.content import (
    Message,
    Run,
    RunError,
    TextBlock,
    ImageFileBlock,
    UnhandledBlock,
    FilePathAnnotation,
    ContentBlock,
    FILE_PURPOSE,
)
from assistable.assist.cache import assist_cache
from assistable.assist.config import Config
from openai import OpenAI, AzureOpenAI
from typing_extensions import override
from typing import List, Dict, Optional
import openai
import io
import logging

LOGGER = logging.getLogger(__name__)


class OAIAGateway(ResourceGateway):

    def __init__(self, openai_client=None):
        super().__init__()
        if openai_client is None:
            openai_client = self._create_client(Config.config().get_openai_config())
        self.openai_client = openai_client

    @classmethod
    @assist_cache
    def gateway(cls) -> ResourceGateway:
        return OAIAGateway()

    @staticmethod
    def _create_client(settings: dict):
        if settings.get('azure'):
            LOGGER.info("Using Azure OpenAI API")
            return AzureOpenAI(
                api_key=settings['api_key'],
                azure_endpoint=settings['azure_endpoint'],
                api_version=settings['api_version'],
            )
        LOGGER.info("Using OpenAI API")
        return OpenAI(api_key=settings.get('api_key'), project=settings.get('project'))

    @override
    def create_file_resource(self, file_path: str, file_bytes: io.BytesIO) -> str:
        try:
            openai_file = self.openai_client.files.create(
                file=(file_path, file_bytes),
                purpose=FILE_PURPOSE
            )
            file_id = openai_file.id
            LOGGER.info(f"Successfully uploaded '{file_path}' to OpenAI. File ID: {file_id}")
            return file_id
        except Exception as e:
            LOGGER.error(f"Error uploading file '{file_path}' to OpenAI: {e}")
            raise e

    @override
    def get_file_content(self, file_id: str) -> bytes:
        response_content = self.openai_client.files.content(file_id)
        return response_content.read()

    @override
    def delete_file_resource(self, file_id: str) -> bool:
        try:
            self.openai_client.files.delete(file_id)
            LOGGER.info(f"Successfully deleted file {file_id} from provider.")
            return True
        except openai.NotFoundError:
            LOGGER.warning(f"File {file_id} not found on provider. Considered 'deleted' for provider part.")
            return False
        except Exception as e:
            LOGGER.error(f"Error deleting file {file_id} from provider: {e}", exc_info=True)
            raise e

    @override
    def create_thread_resource(self, content: str, attachments: Optional[List[Dict]] = None) -> str:
        try:
            openai_thread = self.openai_client.beta.threads.create(
                messages=[{
                    "role": "user",
                    "content": content,
                    "attachments": attachments or [],
                }]
            )
            LOGGER.info(f"Successfully created thread {openai_thread.id} with {len(attachments or [])} attachments")
            return openai_thread.id
        except Exception as e:
            LOGGER.error(f"Error creating thread from provider: {e}", exc_info=True)
            raise e

    @override
    def delete_thread_resource(self, thread_id: str) -> bool:
        try:
            self.openai_client.beta.threads.delete(thread_id)
            LOGGER.info(f"Successfully deleted thread {thread_id} from openai")
            return True
        except openai.NotFoundError:
            LOGGER.warning(f"Thread {thread_id} not found on provider")
            return False
        except Exception as e:
            LOGGER.error(f"Error deleting thread {thread_id} from provider: {e}", exc_info=True)
            raise e

    @override
    def create_message(self, thread_id: str, role: str, content: str) -> str:
        msg = self.openai_client.beta.threads.messages.create(
            thread_id=thread_id,
            role=role,
            content=content,
        )
        LOGGER.debug(f"Created message {msg.id} on thread {thread_id}")
        return msg.id

    @override
    def list_messages(self, thread_id: str) -> List[Message]:
        response = self.openai_client.beta.threads.messages.list(thread_id=thread_id, order="desc")
        return [self.to_message(message) for message in response.data]

    @override
    def create_run(self, thread_id: str, assistant_id: str) -> Run:
        openai_run = self.openai_client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=assistant_id,
        )
        return self.to_run(openai_run)

    @override
    def get_run(self, thread_id: str, run_id: str) -> Run:
        openai_run = self.openai_client.beta.threads.runs.retrieve(run_id=run_id, thread_id=thread_id)
        return self.to_run(openai_run)

    @staticmethod
    def to_run(openai_run) -> Run:
        last_error = None
        if getattr(openai_run, 'last_error', None) is not None:
            last_error = RunError(code=str(openai_run.last_error.code), message=openai_run.last_error.message)
        return Run(
            run_id=openai_run.id,
            thread_id=openai_run.thread_id,
            status=openai_run.status,
            last_error=last_error,
        )

    @classmethod
    def to_message(cls, message) -> Message:
        attachments = []
        for attachment in (getattr(message, 'attachments', None) or []):
            tools = [{"type": tool.type} for tool in (attachment.tools or [])]
            attachments.append({"file_id": attachment.file_id, "tools": tools})
        return Message(
            message_id=message.id,
            role=message.role,
            content=[cls.to_content_block(part) for part in message.content],
            attachments=attachments,
        )

    @staticmethod
    def to_content_block(part) -> ContentBlock:
        if part.type == "text":
            annotations = []
            for annotation in (part.text.annotations or []):
                if annotation.type == "file_path":
                    annotations.append(FilePathAnnotation(
                        start_index=annotation.start_index,
                        end_index=annotation.end_index,
                        text=annotation.text,
                        file_id=annotation.file_path.file_id,
                    ))
                else:
                    LOGGER.debug(f"Skipping annotation of type {annotation.type}")
            return TextBlock(value=part.text.value, annotations=annotations)
        elif part.type == "image_file":
            return ImageFileBlock(file_id=part.image_file.file_id)
        LOGGER.debug(f"Content part of unhandled type: {part.type}")
        return UnhandledBlock(type=part.type, raw=part)
