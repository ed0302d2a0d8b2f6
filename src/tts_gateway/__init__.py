"""
tts-gateway: Cached Text-to-Speech Gateway.

An HTTP service in front of a cloud speech provider (Azure Speech). Text
goes in, an MP3 file comes out, and the file is kept on disk under a key
derived from the request so repeated requests never pay for synthesis
twice.

Key Features:
    - Content-addressed audio cache (MD5 fingerprint of text + voice)
    - Bounded number of stored files (507 once the limit is reached)
    - Create / fetch / list / delete endpoints under /text2speech
    - Voice catalogue passthrough with locale and gender filters
    - Prometheus metrics support

Example Usage:
    from tts_gateway.core.config import Settings
    from tts_gateway.services import get_service

    service = get_service(Settings(raw={}))
    key = service.create("Hello")
    with open("hello.mp3", "wb") as f:
        f.write(service.fetch(key))
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
