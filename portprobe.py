#!/usr/bin/env python3
"""
portprobe - Multi-Worker TCP Port Scanner

Probes a host over a port range or a curated port list with a bounded pool
of concurrent workers, optionally grabbing service banners.

Usage:
    python portprobe.py -t 192.168.1.1 -p 1-1024
    python portprobe.py -t scanme.nmap.org -p 80-443 -b -o json
    python portprobe.py -t localhost --top-ports -b
"""

from portprobe.main import main

if __name__ == "__main__":
    main()
