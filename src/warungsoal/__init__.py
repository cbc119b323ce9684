"""WarungSoal progression service: EXP, levels, trophy ranks and seasons."""
