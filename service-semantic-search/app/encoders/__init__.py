"""Query encoding.

Key pieces
- ``transformer_encoder``: loads the local tokenizer and transformer weights
- ``embedding_generator``: mean pooling and L2 normalization into a query vector
- ``device``: picks CUDA, Apple MPS, or CPU for inference
"""
