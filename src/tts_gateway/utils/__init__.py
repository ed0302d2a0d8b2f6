"""
Utility Modules for tts-gateway.

    - timeit.py: Stage timing for log lines
"""
