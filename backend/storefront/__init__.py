"""Hotel storefront pricing and form-protection service."""
