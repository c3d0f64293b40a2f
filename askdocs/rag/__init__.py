"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document chunking
- Embedding generation
- Vector index provisioning and batched upserts
- Local FAISS and Pinecone vector databases
- Semantic retrieval and answer synthesis
"""
