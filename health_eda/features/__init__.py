"""Feature selection and design matrices."""
