"""Provider functions returning shared service instances."""
