#!/usr/bin/env python3
"""
Example backend for trying json_exporting locally.
Listens on a TCP port and prints every JSON record it receives, for both
the ``json`` and the ``json:http`` connector types.
"""

import json
import socket
import sys

HTTP_OK = b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n"


def print_records(text):
    """Print the records contained in a newline-delimited or array payload"""
    text = text.strip()
    if not text:
        return
    if text.startswith("["):
        records = json.loads(text)
    else:
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    for record in records:
        print(f"  {record['hostname']} {record['chart_id']}.{record['id']} = {record['value']} @ {record['timestamp']}")


def handle(conn):
    """Read from one connection until it is closed"""
    pending = b""
    with conn:
        while True:
            data = conn.recv(65536)
            if not data:
                break
            pending += data
            while pending.startswith(b"POST "):
                header, sep, rest = pending.partition(b"\r\n\r\n")
                if not sep:
                    break
                length = 0
                for line in header.split(b"\r\n"):
                    if line.lower().startswith(b"content-length:"):
                        length = int(line.split(b":", 1)[1])
                if len(rest) < length:
                    break
                print_records(rest[:length].decode("utf-8"))
                conn.sendall(HTTP_OK)
                pending = rest[length:]
            if pending and not pending.startswith(b"POST ") and pending.endswith(b"\n"):
                print_records(pending.decode("utf-8"))
                pending = b""


def serve(port):
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("0.0.0.0", port))
    sock.listen(5)
    print(f"Listening on port {port}...")
    print("=" * 60)
    while True:
        conn, addr = sock.accept()
        print(f"[connection from {addr[0]}:{addr[1]}]")
        handle(conn)
        print("[connection closed]")


if __name__ == '__main__':
    try:
        serve(int(sys.argv[1]) if len(sys.argv) > 1 else 5448)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(0)
