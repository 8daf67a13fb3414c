# tests/test_configuration.py
"""Tests for the configuration module."""

import os
from dataclasses import FrozenInstanceError

import pytest

from localmind.configuration import LiteLLMProvider, LocalStorage, ProviderConfig, StorageConfig
from localmind.embedder import ClientEmbedder
from localmind.generation import GenerationEngine
from localmind.models import ModelState
from localmind.providers.litellm import LiteLLMClient
from localmind.settings import Settings
from localmind.stores import (
    ChromaVectorStore,
    SQLiteChunkStore,
    SQLiteDocumentRegistry,
    SQLiteSessionStore,
)
from localmind.tasks import LocalContentStore


class TestLocalStorage:
    def test_build_stores_creates_every_store(self, temp_dir):
        stores = LocalStorage(temp_dir).build_stores()
        try:
            assert isinstance(stores.vector_store, ChromaVectorStore)
            assert isinstance(stores.chunk_store, SQLiteChunkStore)
            assert isinstance(stores.document_registry, SQLiteDocumentRegistry)
            assert isinstance(stores.session_store, SQLiteSessionStore)
            assert isinstance(stores.content_store, LocalContentStore)
        finally:
            stores.vector_store.close()

    def test_build_stores_creates_directory(self, temp_dir):
        new_dir = os.path.join(temp_dir, "new_storage")
        stores = LocalStorage(new_dir).build_stores()
        stores.vector_store.close()

        assert os.path.isdir(new_dir)
        assert os.path.isdir(os.path.join(new_dir, "content"))

    def test_candidate_count_from_settings(self, temp_dir):
        stores = LocalStorage(temp_dir).build_stores(Settings(candidate_count=50))
        try:
            assert stores.vector_store.candidate_count == 50
        finally:
            stores.vector_store.close()

    def test_is_frozen_dataclass(self, temp_dir):
        storage = LocalStorage(temp_dir)

        with pytest.raises(FrozenInstanceError):
            storage.data_dir = "/other/path"  # type: ignore[misc]

    def test_satisfies_protocol(self, temp_dir):
        assert isinstance(LocalStorage(temp_dir), StorageConfig)


class TestLiteLLMProvider:
    @pytest.fixture
    def provider(self):
        return LiteLLMProvider(
            llm="ollama_chat/llama3.2",
            embedding="ollama/nomic-embed-text",
            api_base="http://localhost:11434",
            embedding_dimension=768,
        )

    def test_satisfies_protocol(self, provider):
        assert isinstance(provider, ProviderConfig)

    def test_build_embedder(self, provider):
        embedder = provider.build_embedder(Settings())

        assert isinstance(embedder, ClientEmbedder)
        assert not embedder.is_loaded
        assert embedder.model_version == "ollama/nomic-embed-text"

    def test_build_engine_is_unloaded(self, provider):
        engine = provider.build_engine(Settings(temperature=0.2, max_output_tokens=64))

        assert isinstance(engine, GenerationEngine)
        assert engine.state is ModelState.UNLOADED
        assert engine.default_params.temperature == 0.2
        assert engine.default_params.max_output_tokens == 64

    def test_build_llm_client(self, provider):
        client = provider.build_llm_client(Settings(num_retries=7))

        assert isinstance(client, LiteLLMClient)
        assert client.model == "ollama_chat/llama3.2"
        assert client.api_base == "http://localhost:11434"
        assert client.num_retries == 7

    def test_build_llm_client_default_retries(self, provider):
        assert provider.build_llm_client().num_retries == 3

    def test_is_frozen_dataclass(self, provider):
        with pytest.raises(FrozenInstanceError):
            provider.llm = "other"  # type: ignore[misc]
