"""Order references and outbound order creation."""
