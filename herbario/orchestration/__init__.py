"""
Orchestration: moderation workflow over the kernel layer.
"""
