import csv
import os
import random

if not os.path.exists("data"):
    os.mkdir("data")

NAMES = {
    "F": ["Marie", "Jeanne", "Louise", "Alice", "Clara"],
    "M": ["Jean", "Louis", "Pierre", "Paul", "Leon"],
}

with open("data/births.csv", "w", newline="") as f:
    writer = csv.writer(f)
    writer.writerow(["year", "sex", "name", "nb_births"])
    for year in range(1900, 2021):
        for sex, names in NAMES.items():
            for name in names:
                writer.writerow([year, sex, name, random.randint(1, 5000)])
