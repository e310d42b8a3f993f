"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Processes (resolver subprocess tracking via psutil)
- Audio (yt-dlp resolver, FFmpeg sink)
- Discord (bot, cogs, voice gateway)
"""
