"""Activities: bookable resources, registrations and waitinglists."""
