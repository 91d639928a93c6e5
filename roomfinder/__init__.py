"""Room Finder: book a free meeting room by voice."""
