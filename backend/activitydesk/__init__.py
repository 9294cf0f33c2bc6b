"""Activity registration and waitinglist backend."""
