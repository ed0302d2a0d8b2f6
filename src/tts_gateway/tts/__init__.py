"""
Speech and Cache Components.

    - fingerprint.py: Request → file key hashing
    - storage.py: Flat-directory audio store
    - concurrency.py: Per-key locks and the capacity gate
    - gateway.py: Speech provider base class and factory
    - gateways/: Provider implementations (Azure Speech)
"""
