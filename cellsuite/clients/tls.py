import ssl


def build_mutual_tls_context(
    ca_cert: str | None,
    client_cert: str,
    client_key: str,
) -> ssl.SSLContext:
    """
    Client context for components that require mutual TLS. The server
    certificate is verified against ``ca_cert`` (agents carry an IP SAN for
    127.0.0.1), or the system trust store when no CA is given, and
    ``client_cert``/``client_key`` are presented in turn.
    """
    context = ssl.create_default_context(
        ssl.Purpose.SERVER_AUTH,
        cafile=ca_cert,
    )

    context.load_cert_chain(
        certfile=client_cert,
        keyfile=client_key,
    )

    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context
