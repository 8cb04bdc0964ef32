from cryptography.hazmat.primitives import hashes


class Crypto:
    @staticmethod
    def get_hasher(algorithm=hashes.SHA256):
        return hashes.Hash(algorithm())

    @staticmethod
    def sha256(data: bytes) -> str:
        h = Crypto.get_hasher()
        h.update(data)
        return h.finalize().hex()
