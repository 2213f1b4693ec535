"""Client-side cart and checkout subsystem of the storefront."""
