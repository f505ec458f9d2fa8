"""Identity state registry over a global sparse Merkle tree (GIST)."""
