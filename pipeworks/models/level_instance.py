import datetime

from pipeworks import db


class LevelInstance(db.Model):
    """One board being played: the generation inputs plus live rotations.

    The tiles themselves are regenerated from (seed, width, height,
    difficulty); only the player's rotation state is stored.
    """

    __tablename__ = 'level_instances'
    id = db.Column(db.Integer, primary_key=True)
    seed = db.Column(db.BigInteger, nullable=False)
    width = db.Column(db.Integer, nullable=False, default=8)
    height = db.Column(db.Integer, nullable=False, default=8)
    difficulty = db.Column(db.Integer, nullable=False, default=5)
    level_index = db.Column(db.Integer, nullable=True)
    # [[x, y, rotation], ...]
    rotations = db.Column(db.JSON, default=list)
    max_fillable = db.Column(db.Integer, nullable=False, default=0)
    moves = db.Column(db.Integer, nullable=False, default=0)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    def rotation_map(self):
        return {(x, y): r for x, y, r in (self.rotations or [])}

    def set_rotation_map(self, rotations):
        self.rotations = [[x, y, r] for (x, y), r in sorted(rotations.items(), key=lambda kv: (kv[0][1], kv[0][0]))]

    def __repr__(self):
        return f'<LevelInstance {self.id} seed={self.seed} {self.width}x{self.height} d={self.difficulty}>'
