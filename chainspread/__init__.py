from chainspread.src.scanner.scan_cycle import ScanCycle
from chainspread.src.scanner.settings import load_config
