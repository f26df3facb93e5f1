"""Department board backend: authentication and board content API."""
