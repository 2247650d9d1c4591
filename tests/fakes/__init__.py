from tests.fakes.fake_embedder import CountingEmbedder, FakeEmbedder

__all__ = ["CountingEmbedder", "FakeEmbedder"]
