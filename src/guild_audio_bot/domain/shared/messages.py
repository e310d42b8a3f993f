"""Centralized message constants for errors, log lines, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"

    # Time/Date Validation Errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"

    # Configuration Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"

    # Resolver Errors
    RESOLVER_UNEXPECTED_ERROR = "Unexpected error while looking up that track"
    RESOLVER_TIMED_OUT = "Track lookup timed out after {seconds:g}s"
    RESOLVER_EXIT_CODE = "Track lookup failed (exit code {code})"
    RESOLVER_NO_METADATA = "No results found for that query"
    RESOLVER_EMPTY_COMMAND = "Resolver command is empty"
    RESOLVER_PLAYLIST_EMPTY = "That playlist has no playable entries"

    # Sink Errors
    SINK_NOT_CONNECTED = "Voice client is not connected"
    SINK_NO_STREAM_URL = "Track '{title}' has no stream URL"


class LogTemplates:
    """Log message templates for structured logging.

    Pass values as logger arguments rather than pre-formatting the string.
    """

    # Store
    STORE_CLEARED = "Session store cleared"

    # Query Deduplication
    DEDUP_DUPLICATE = "Duplicate request in guild %s for %r while %r is in flight"
    DEDUP_ACQUIRED = "Query slot acquired in guild %s for %r"
    DEDUP_RELEASED = "Query slot released in guild %s for %r"
    DEDUP_SUPERSEDED = "Query superseded in guild %s: %r"
    DEDUP_FETCH_FAILED = "Stream fetch failed in guild %s for %r: %s"
    DEDUP_FETCH_UNEXPECTED = "Unexpected stream fetch error in guild %s for %r: %s"

    # Process Registry
    PROCESS_SPAWN_FAILED = "Failed to spawn resolver process for guild %s: %s"
    PROCESS_SPAWNED = "Spawned resolver process in guild %s: pid %s (%s)"
    PROCESS_DISCARDED = "Discarded process record in guild %s: pid %s"
    PROCESS_REAPED_DEAD = "Removed dead process record in guild %s: pid %s"
    PROCESS_OVERLAP_TERMINATED = "Terminated overlapping process in guild %s: pid %s"
    PROCESS_REAP_SUMMARY = "Process reap: %s dead removed, %s overlaps terminated"
    PROCESS_GUILD_TERMINATED = "Terminated %s process(es) for guild %s"
    PROCESS_KILL_FAILED = "Failed to kill process %s: %s"

    # Resolver
    RESOLVER_TIMEOUT = "Resolver timed out in guild %s (pid %s) after %ss"
    RESOLVER_FAILED = "Resolver failed in guild %s for %r: %s"
    RESOLVER_BAD_OUTPUT = "No usable resolver output in guild %s for %r"
    RESOLVER_RESOLVED = "Resolved in guild %s: %r"
    RESOLVER_PLAYLIST_RESOLVED = "Resolved playlist in guild %s: %s entries"

    # Sessions
    SESSION_CREATED = "Created audio session for guild %s"
    SESSION_DELETED = "Deleted audio session for guild %s"
    SESSION_SHUFFLED = "Shuffled queue for guild %s (%s tracks)"
    SESSION_LAZY_ADDED = "Added %s lazily loaded track(s) for guild %s (%s upcoming)"
    SESSION_AUTO_ADVANCE = "Auto-advance for guild %s set to %s"
    VOICE_CHANNEL_CONFIGURED = "Configured voice channel for guild %s: %s"

    # Volume
    VOLUME_UNSUPPORTED = "Volume control unavailable in guild %s; recorded %s%%"
    VOLUME_CAPABILITY_LOST = "Volume control lost in guild %s: %s"
    VOLUME_APPLIED = "Applied volume in guild %s: %s%%"

    # UI State
    STATE_TRANSITION = "Guild %s state: %s -> %s"

    # Timeouts
    TIMEOUT_ARMED = "Inactivity timer armed for guild %s (%ss)"
    TIMEOUT_CANCELLED = "Inactivity timer cancelled for guild %s"
    TIMEOUT_SKIPPED_ACTIVE = "Inactivity timer fired for guild %s but playback is active"
    TIMEOUT_FIRED = "Inactivity timeout fired for guild %s after %ss"
    TIMEOUT_TEARDOWN_FAILED = "Timeout teardown failed for guild %s: %s"

    # Errors
    ERROR_RECORDED = "Recorded error for guild %s (count=%s)"

    # Cleanup Operations
    CLEANUP_STARTED = "Cleanup job started"
    CLEANUP_STOPPED = "Cleanup job stopped"
    CLEANUP_ALREADY_RUNNING = "Cleanup job already running"
    CLEANUP_CYCLE_RUNNING = "Running cleanup cycle..."
    CLEANUP_CYCLE_FAILED = "Cleanup cycle failed"
    CLEANUP_COMPLETED = "Cleanup completed: %s errors swept, %s dead processes, %s overlaps"
    CLEANUP_ERRORS_SWEPT = "Swept %s stale error record(s)"
    CLEANUP_GUILD_PURGED = "Purged %s entries for guild %s"
    CLEANUP_GUILD_TORN_DOWN = "Removed all state for guild %s"
    CLEANUP_PLAYBACK_ENDED = "Ended playback state for guild %s"

    # Diagnostics
    DIAGNOSTICS_RSS_FAILED = "Could not read process memory: %s"
    DIAGNOSTICS_MAP_SIZE = "Map %s holds %s entries"
    DIAGNOSTICS_PROCESS_SUMMARY = "Resolver processes: %s across %s guild(s)"
    DIAGNOSTICS_LOOP_FAILED = "Status logging failed: %s"

    # Playback
    PLAYBACK_SUPERSEDED = "Dropping superseded result in guild %s for %r"
    PLAYBACK_QUEUED = "Queued in guild %s: %r at position %s"
    PLAYBACK_PLAYLIST_LOADED = "Loaded playlist in guild %s: %s track(s)"
    PLAYBACK_LAZY_DEFERRED = "Deferred lazy track in guild %s: %r; %r is in flight"
    PLAYBACK_ADVANCE_OFF = "Track ended in guild %s; auto-advance is off"
    PLAYBACK_START_FAILED = "Failed to start playback in guild %s for %r: %s"
    PLAYBACK_STARTED = "Now playing in guild %s: %r"
    PLAYBACK_STOPPED = "Playback stopped in guild %s"
    PLAYBACK_TRACK_ERROR = "Track ended with error in guild %s: %s"
    PLAYBACK_TIMEOUT_TEARDOWN = "Tearing down guild %s: %s"
    PLAYBACK_DISCONNECT_FAILED = "Failed to disconnect from voice in guild %s: %s"

    # Audio Sink / Voice
    SINK_STARTED = "Sink started in guild %s: %r"
    SINK_STREAM_ERROR = "Audio stream error in guild %s: %s"
    SINK_CALLBACK_FAILED = "Track-end callback failed in guild %s: %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_CONNECT_FAILED = "Failed to join voice in guild %s (channel %s): %s"

    # Commands
    COMMAND_DOMAIN_ERROR = "Command %s rejected in guild %s: %s"
    COMMAND_FAILED = "Command %s failed in guild %s: %s"

    # Events
    EVENT_GUILD_REMOVED = "Removed from guild %s; cleaning up"
    EVENT_BOT_VOICE_DISCONNECTED = "Bot was disconnected from voice in guild %s"

    # Bot Lifecycle
    BOT_STARTING = "Starting Guild Audio Bot in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_CONTAINER_INITIALIZED = "Container initialized successfully"
    BOT_CONTAINER_INIT_FAILED = "Failed to initialize container: %s"
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    LOGGING_CONFIG_FALLBACK = "Could not load %s (%s), falling back to basic config"
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_TIMEOUT = "Shutdown step timed out: %s"
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"

    # Cog Loading
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s success, %s failed"

    # Command Sync
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Failed to sync commands on startup: %s"

    # Error Handling
    BOT_SLASH_COMMAND_ERROR = "Slash command error in '%s': %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_CLEANUP_START_FAILED = "Failed to start cleanup job: %s"
    BOT_SINKS_STOPPED = "Stopped %s active sink(s)"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    """

    # Play Flow
    NOW_PLAYING = "▶️ Now playing: **{title}**"
    ADDED_TO_QUEUE = "✅ Added to queue: **{title}** (position {position})"
    PLAYLIST_STARTED = "▶️ Now playing: **{title}** (+{count} more from the playlist)"
    PLAYLIST_QUEUED = "✅ Added **{count}** tracks from the playlist to the queue."
    REQUEST_ALREADY_IN_PROGRESS = "⏳ A request is already in progress for this server."
    REQUEST_IN_PROGRESS_FOR = "⏳ Still working on `{query}`. Try again in a moment."
    REQUEST_SUPERSEDED = "⏭️ That request was cancelled by a newer action."

    # Transport
    SKIPPED_TO = "⏭️ Skipped. Now playing: **{title}**"
    SKIPPED_QUEUE_FINISHED = "⏭️ Skipped. The queue is empty."
    STOPPED = "⏹️ Stopped playback and cleared the queue."
    PAUSED = "⏸️ Paused playback."
    RESUMED = "▶️ Resumed playback."
    SHUFFLED = "🔀 Shuffled {count} tracks."
    RESET_DONE = "🔄 Player reset."
    NOTHING_PLAYING = "Nothing is playing."
    NOTHING_TO_PAUSE = "Nothing is playing or already paused."
    NOTHING_TO_RESUME = "Nothing is paused."
    NOT_ENOUGH_TO_SHUFFLE = "Not enough tracks to shuffle."
    NO_ACTIVE_SESSION = "❌ No active music session found!"

    # Auto-advance
    AUTO_ADVANCE_ENABLED = "✅ **Auto-advance enabled!** The bot will now automatically play the next song when one ends."
    AUTO_ADVANCE_DISABLED = "⏹️ **Auto-advance disabled!** The bot will stop after each song and wait for your command."
    AUTO_ADVANCE_STATUS = "{emoji} **Auto-advance is currently {state}.**\n\nQueue: {queue}"
    AUTO_ADVANCE_QUEUE_WAITING = "{count} song(s) waiting"
    AUTO_ADVANCE_QUEUE_EMPTY = "Empty"

    # Volume
    VOLUME_SET = "🔊 Volume: {volume}%"
    VOLUME_MUTED = "🔇 Muted."
    VOLUME_UNSUPPORTED_NOTE = "⚠️ Volume control isn't available for this stream; it will apply to the next track."

    # Configuration
    VOICE_CHANNEL_CONFIGURED = "✅ Voice channel set to <#{channel_id}>."

    # Error Messages
    ERROR_EMPTY_QUERY = "❌ Please provide a song name or URL."
    ERROR_NOT_CONNECTED = "❌ I'm not connected to a voice channel."
    ERROR_PLAYBACK_START_FAILED = "❌ Couldn't start playback for that track."
    ERROR_GENERIC = "❌ Something went wrong."
    ERROR_WITH_REASON = "❌ {reason}"
    ERROR_COMMAND_FAILED = "❌ Command failed. See logs."
    ERROR_INVALID_CHANNEL = "❌ That isn't a valid voice channel."
    ERROR_INVALID_OPTION = "❌ Invalid option!"
    ERROR_REQUIRES_OWNER_OR_ADMIN = "❌ Requires owner or admin permissions."
    ERROR_COULD_NOT_JOIN_VOICE = "I couldn't join your voice channel."

    # State Messages
    STATE_SERVER_ONLY = "This command can only be used in a server."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel first."

    # Control Panel
    PANEL_TITLE = "🎵 Music Player"
    PANEL_MUTED = "🔇 **MUTED**"
    PANEL_QUEUE_LINE = "Queue: {count} song(s) in line"
    PANEL_NOT_CONNECTED = "Bot is not connected to a voice channel."
    PANEL_READY = "Ready to play music! Use `/play <song name/URL>` to get started."
    PANEL_READY_WITH_QUEUE = "⏸ **Ready to play**\n\n{queue_line}"
    PANEL_LOADING = "**Loading:** `{title}`\n\nPlease wait while I find and prepare your music..."
    PANEL_UNKNOWN_TITLE = "Unknown Title"
    PANEL_TRACK = "**{title}**\n\n{queue_line}"
    PANEL_ERROR = "❌ **Error occurred**\n\n**Error:** {error}\n\n{queue_line}"
    PANEL_FIELD_TIME = "Time"
    PANEL_FIELD_VOLUME = "Volume"

    # Memory Inspection
    INSPECT_HEADER = "🧠 **Memory Inspection**"
    INSPECT_MAP_LINE = "• `{name}`: {size} entries"
    INSPECT_SAMPLE_LINE = "    ◦ {key}: {sample}"
    INSPECT_GUILDS_LINE = "Known guilds: {count}"
    INSPECT_PROCESSES_LINE = "Resolver processes: {processes} across {guilds} guild(s)"
    INSPECT_RSS_LINE = "Resident memory: {rss_mb} MB"
    INSPECT_FOOTER = "Generated {at}"

    # Process Status
    PROCESS_STATUS_HEADER = "🔍 **Process Status Report**"
    PROCESS_STATUS_TOTAL_GUILDS = "Total guilds with processes: {count}"
    PROCESS_STATUS_TOTAL_PROCESSES = "Total tracked processes: {count}"
    PROCESS_STATUS_NONE = "✅ No active processes found"
    PROCESS_STATUS_GUILD_LINE = "• Guild {guild_id}: {alive}/{total} alive processes (PIDs: {pids})"


class EmojiConstants:
    """Emoji constants for consistent visual feedback."""

    # Status Indicators
    CHECK = "✅"
    CROSS = "❌"
    STOP = "⏹️"

    # Media Controls
    PLAY = "▶"
    PAUSE = "⏸"

    # Time
    HOURGLASS = "⏳"
