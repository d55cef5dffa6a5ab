from idverify.utils.hashing import generate_hash

__all__ = ["generate_hash"]
